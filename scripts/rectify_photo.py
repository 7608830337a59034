"""
Rectify a photographed page carrying two QR page markers.

The first-pass scan runs on a downscaled preview of the photo, the same
way a camera preview would be scanned before the full capture. The
rectified page is written as a PNG next to a JSON sidecar holding the
grid and marker parameters.

Usage:
    python scripts/rectify_photo.py --image page.jpg --output out/page.png

    # Fit the output to a 1080x1920 view and scale it to the view width
    python scripts/rectify_photo.py --image page.jpg --output out/page.png \
        --view-size 1080 1920 --resize-to-view
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import cv2

from dualmark.markers.decoder import OpenCVMarkerDecoder, scan_preview
from dualmark.rectification.config_loader import (
    DEFAULT_CONFIG_PATH,
    decoder_hints,
    load_config,
)
from dualmark.rectification.processor import RectificationProcessor

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def make_preview(image, max_side: int):
    """Downscale ``image`` so its longer side is at most ``max_side``."""
    height, width = image.shape[:2]
    scale = min(1.0, max_side / max(width, height))
    if scale == 1.0:
        return image
    return cv2.resize(
        image,
        (round(width * scale), round(height * scale)),
        interpolation=cv2.INTER_AREA,
    )


def main():
    """Main entry point for single-photo rectification."""
    parser = argparse.ArgumentParser(
        description="Rectify a photo of a page with identifier and alignment QR markers"
    )
    parser.add_argument("--image", type=Path, required=True, help="Input photo")
    parser.add_argument(
        "--output", type=Path, required=True, help="Output PNG path for the rectified page"
    )
    parser.add_argument(
        "--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path"
    )
    parser.add_argument(
        "--preview-size",
        type=int,
        default=640,
        help="Longer side of the preview used for the first-pass scan (default: 640)",
    )
    parser.add_argument(
        "--view-size",
        type=int,
        nargs=2,
        metavar=("WIDTH", "HEIGHT"),
        default=None,
        help="Target view size (default: from config)",
    )
    parser.add_argument(
        "--resize-to-view",
        action="store_true",
        help="Scale the rectified page to the view width",
    )
    parser.add_argument(
        "--rotation",
        type=int,
        default=0,
        choices=[0, 90, 180, 270],
        help="Screen rotation at capture time in degrees (default: 0)",
    )
    args = parser.parse_args()

    photo = cv2.imread(str(args.image), cv2.IMREAD_COLOR)
    if photo is None:
        logger.error(f"Could not read image: {args.image}")
        return 1

    config = load_config(args.config)
    decoder = OpenCVMarkerDecoder(decoder_hints(config))

    preview = make_preview(photo, args.preview_size)
    preview_height, preview_width = preview.shape[:2]
    logger.info(
        f"Scanning {preview_width}x{preview_height} preview of "
        f"{photo.shape[1]}x{photo.shape[0]} photo"
    )
    detections = scan_preview(preview, decoder)
    if detections is None:
        logger.error("Preview scan did not find exactly two markers")
        return 1

    processor = RectificationProcessor(config=config, decoder=decoder)
    result = processor.process(
        photo,
        detections,
        preview_size=(preview_width, preview_height),
        screen_rotation=args.rotation,
        view_size=tuple(args.view_size) if args.view_size else None,
        resize_to_view=args.resize_to_view or None,
    )

    if not result.is_pass():
        logger.error(result.get_error_message())
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(str(args.output), result.rectified_image)

    sidecar_path = args.output.with_suffix(".json")
    sidecar = {
        "page_id": result.page_id,
        "image_parameters": result.image_parameters.to_dict(),
        "code_parameters": result.code_parameters.to_dict(),
    }
    with open(sidecar_path, "w", encoding="utf-8") as f:
        json.dump(sidecar, f, indent=2)

    logger.info(f"Saved rectified page to {args.output}")
    logger.info(f"Saved parameters to {sidecar_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
