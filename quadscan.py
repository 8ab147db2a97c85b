"""
quadscan - Document scan from a photo
Finds (or takes) the 4 corners of a document, corrects perspective and
writes the scanned image plus an optional black-and-white enhanced version.
"""

import argparse
import logging
import sys

from quadlib import (
    AdaptiveThreshold,
    PerspectiveCorrector,
    Quadrilateral,
    RectangleDetector,
    ScanResult,
    load_image,
    save_image,
)
from quadlib.image_io import DEFAULT_DPI, ImageFormatError, suggested_output_path


def parse_corners(text):
    """Parse "x,y x,y x,y x,y" into four (x, y) tuples"""
    pairs = text.replace(';', ' ').split()
    if len(pairs) != 4:
        raise argparse.ArgumentTypeError("expected 4 corners as 'x,y x,y x,y x,y'")
    try:
        return [tuple(float(v) for v in pair.split(',')) for pair in pairs]
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid corner list: {text!r}")


def parse_size(text):
    """Parse "WxH" into a (width, height) tuple"""
    try:
        width, height = (float(v) for v in text.lower().split('x'))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid size {text!r}, expected WxH")
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"size must be positive, got {text!r}")
    return width, height


def build_parser():
    parser = argparse.ArgumentParser(description='quadscan - Perspective-correct a photographed document')
    parser.add_argument('image', help='Image file to scan (JPEG, PNG, BMP, HEIC)')
    parser.add_argument('-o', '--output', help='Scanned image path (default: <image>_scan.<ext>)')
    parser.add_argument('--enhanced-output',
                        help='Enhanced image path (default: <image>_enhanced.<ext>)')
    parser.add_argument('--corners', type=parse_corners,
                        help='Document corners as "x,y x,y x,y x,y" instead of auto-detection')
    parser.add_argument('--view-size', type=parse_size,
                        help='Size (WxH) of the space --corners were placed in (default: image size)')
    parser.add_argument('--no-enhance', action='store_true',
                        help='Skip the adaptive-threshold enhanced image')
    parser.add_argument('--prefer-enhanced', action='store_true',
                        help='Write the enhanced image as the main output')
    parser.add_argument('--block-size', type=int, default=21,
                        help='Adaptive threshold neighbourhood in pixels, odd (default: 21)')
    parser.add_argument('--offset', type=float, default=10,
                        help='Adaptive threshold offset (default: 10)')
    parser.add_argument('--dpi', type=int, default=None,
                        help=f'Output DPI (default: input DPI or {DEFAULT_DPI})')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase log output (-v info, -vv debug)')
    return parser


def run(args):
    try:
        image, input_dpi = load_image(args.image)
    except (FileNotFoundError, ImageFormatError) as e:
        logging.error(str(e))
        return 1

    height, width = image.shape[:2]
    dpi = args.dpi or input_dpi or DEFAULT_DPI

    corrector = PerspectiveCorrector(
        threshold=AdaptiveThreshold(block_size=args.block_size, offset=args.offset),
        enhance=not args.no_enhance,
    )

    if args.corners:
        quad = Quadrilateral.from_points(args.corners)
        view_size = args.view_size or (width, height)
        result = ScanResult.from_picture(image, quad, view_size, corrector=corrector)
    else:
        quad = RectangleDetector().detect(image)
        if quad is None:
            logging.warning("No document found, using default region")
            quad = Quadrilateral.default_for_size((width, height))
        result = corrector.correct(image, quad)

    result = result.with_preference(args.prefer_enhanced)

    if not result.is_corrected:
        print("Correction unavailable for the selected region", file=sys.stderr)
        return 1

    output_path = args.output or suggested_output_path(args.image, "_scan")
    save_image(output_path, result.preferred_image, dpi=dpi)

    status_msg = (f"Scan saved: {output_path} "
                  f"({result.scanned_image.shape[1]}x{result.scanned_image.shape[0]}px @ {dpi}DPI)")

    if result.enhanced_image is not None and not args.prefer_enhanced:
        enhanced_path = args.enhanced_output or suggested_output_path(args.image, "_enhanced")
        save_image(enhanced_path, result.enhanced_image, dpi=dpi)
        status_msg += f", enhanced: {enhanced_path}"

    print(status_msg)
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format='%(levelname)s: %(message)s')

    try:
        return run(args)
    except ValueError as e:
        logging.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
