"""Command line interface for the posterizer."""
import argparse
import logging
import sys
from pathlib import Path

from posterizer.pipeline import Posterizer
from posterizer.svg_export import generate_svg, save_svg
from posterizer.types import (
    AUTO,
    ChannelMode,
    FillStrategy,
    PosterizerError,
    RangeDistribution,
)


def parse_threshold(value: str):
    if value == AUTO:
        return AUTO
    try:
        return int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid threshold: {value!r}")


def parse_steps(value: str):
    """Accept 'auto', a count, or a comma-separated list of levels."""
    if value == AUTO:
        return AUTO
    try:
        if ',' in value:
            return [int(s.strip()) for s in value.split(',') if s.strip()]
        return int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid steps: {value!r}")


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog='posterizer',
        description='Convert raster images to layered, posterized SVG'
    )

    parser.add_argument(
        'input',
        type=str,
        help='Input image path or URL'
    )

    parser.add_argument(
        '-o', '--output',
        type=str,
        help='Output SVG path (default: input.svg)'
    )

    parser.add_argument(
        '--threshold',
        type=parse_threshold,
        default=142,
        help="Binary threshold 0-255 or 'auto' (default: 142)"
    )

    parser.add_argument(
        '--steps',
        type=parse_steps,
        default=AUTO,
        help="Number of layers, 'auto', or comma-separated levels (default: auto)"
    )

    parser.add_argument(
        '--fill',
        choices=[s.value for s in FillStrategy],
        default=FillStrategy.DOMINANT.value,
        help='How layer colors are chosen (default: dominant)'
    )

    parser.add_argument(
        '--ranges',
        choices=[r.value for r in RangeDistribution],
        default=RangeDistribution.AUTO.value,
        help='How thresholds are distributed (default: auto)'
    )

    parser.add_argument(
        '--background',
        type=str,
        default='transparent',
        help="Background color or 'transparent' (default: transparent)"
    )

    parser.add_argument(
        '--color',
        type=str,
        default=AUTO,
        help="Layer fill color or 'auto' (default: auto)"
    )

    parser.add_argument(
        '--channel',
        choices=[c.value for c in ChannelMode],
        default=ChannelMode.LUMINANCE.value,
        help='Grey level source: luminance or a single r, g, b channel (default: luminance)'
    )

    parser.add_argument(
        '--white-on-black',
        action='store_true',
        help='Trace light shapes on a dark background'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log per-layer details'
    )

    return parser


def main(args=None):
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed_args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s'
    )

    source = parsed_args.input
    is_url = source.startswith(('http://', 'https://'))

    if not is_url and not Path(source).exists():
        print(f"Error: Input file not found: {source}", file=sys.stderr)
        return 1

    # Determine output path
    if parsed_args.output:
        output_path = Path(parsed_args.output)
    elif is_url:
        output_path = Path(Path(source.split('?')[0]).name or 'output').with_suffix('.svg')
    else:
        output_path = Path(source).with_suffix('.svg')

    try:
        posterizer = Posterizer(
            threshold=parsed_args.threshold,
            steps=parsed_args.steps,
            fill_strategy=parsed_args.fill,
            range_distribution=parsed_args.ranges,
            background=parsed_args.background,
            color=parsed_args.color,
            channel=parsed_args.channel,
            black_on_white=not parsed_args.white_on_black,
        )

        print(f"Loading {source}...")
        posterizer.load_image(source)

        document = posterizer.render()
        print(f"  Threshold: {posterizer.threshold()}")
        print(f"  Layers: {len(document.layers)}")
        for layer in document.layers:
            print(f"    {layer.threshold:7.2f}  opacity {layer.opacity_string}")

        save_svg(generate_svg(document), output_path)
        print(f"Saved SVG to: {output_path}")
        return 0

    except PosterizerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
