"""Command line interface for clustervec."""
import argparse
import logging
import sys

from clustervec.config import Config, PRESETS
from clustervec.converter import convert
from clustervec.types import ConfigError, ConversionError


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog='clustervec',
        description='Convert raster images to SVG by hierarchical color clustering',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  clustervec -i input.png -o output.svg
  clustervec -i input.png -o output.svg --hierarchical cutout --mode polygon
  clustervec -i scan.jpg -o scan.svg --preset bw
        """,
    )

    parser.add_argument('-i', '--input', required=True, help='Input image path')
    parser.add_argument('-o', '--output', required=True, help='Output SVG path')

    parser.add_argument(
        '--preset',
        choices=sorted(PRESETS),
        default=None,
        help='Start from a preset; explicit options still override it'
    )
    parser.add_argument(
        '--colormode',
        choices=['color', 'binary'],
        default=None,
        help='True color image or black and white (default: color)'
    )
    parser.add_argument(
        '--hierarchical',
        choices=['stacked', 'cutout'],
        default=None,
        help='Shapes stacked on top of one another, or disjoint (default: stacked)'
    )
    parser.add_argument(
        '-m', '--mode',
        choices=['pixel', 'polygon', 'spline'],
        default=None,
        help='Curve fitting mode (default: spline)'
    )
    parser.add_argument(
        '-f', '--filter_speckle',
        type=int,
        default=None,
        help='Discard patches smaller than X px in size [0..16] (default: 4)'
    )
    parser.add_argument(
        '-p', '--color_precision',
        type=int,
        default=None,
        help='Number of significant bits to use in an RGB channel [1..8] (default: 6)'
    )
    parser.add_argument(
        '-g', '--gradient_step',
        type=int,
        default=None,
        help='Color difference between gradient layers [0..255] (default: 16)'
    )
    parser.add_argument(
        '-c', '--corner_threshold',
        type=int,
        default=None,
        help='Minimum momentary angle (degrees) to be considered a corner [0..180] (default: 60)'
    )
    parser.add_argument(
        '-l', '--segment_length',
        type=float,
        default=None,
        help='Perform iterative subdivide smooth until all segments are shorter '
             'than this length [3.5..10] (default: 4.0)'
    )
    parser.add_argument(
        '-s', '--splice_threshold',
        type=int,
        default=None,
        help='Minimum angle displacement (degrees) to splice a spline [0..180] (default: 45)'
    )
    parser.add_argument(
        '--path_precision',
        type=int,
        default=None,
        help='Number of decimal places to use in path string (default: 2)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log pipeline progress'
    )

    return parser


_OPTION_FIELDS = {
    'colormode': 'color_mode',
    'hierarchical': 'hierarchical',
    'mode': 'mode',
    'filter_speckle': 'filter_speckle',
    'color_precision': 'color_precision',
    'gradient_step': 'layer_difference',
    'corner_threshold': 'corner_threshold',
    'segment_length': 'length_threshold',
    'splice_threshold': 'splice_threshold',
    'path_precision': 'path_precision',
}


def config_from_args(parsed_args: argparse.Namespace) -> Config:
    """Build a Config, preset first, then explicit options."""
    overrides = {
        field: getattr(parsed_args, option)
        for option, field in _OPTION_FIELDS.items()
        if getattr(parsed_args, option) is not None
    }
    overrides['input_path'] = parsed_args.input
    overrides['output_path'] = parsed_args.output

    if parsed_args.preset:
        return Config.from_preset(parsed_args.preset, **overrides)
    return Config(**overrides)


def main(args=None):
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    logging.basicConfig(
        level=logging.INFO if parsed_args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s'
    )

    try:
        config = config_from_args(parsed_args)
    except ConfigError as e:
        parser.error(str(e))

    try:
        convert(config)
    except ConversionError as e:
        print(f"Conversion failed with error message: {e}", file=sys.stderr)
        return 1

    print("Conversion successful.")
    return 0


if __name__ == '__main__':
    sys.exit(main())
