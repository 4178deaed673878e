from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from .orchestrator import Failed, Finished, ImageProcessor
from .pipeline import MODEL_REGISTRY, BackgroundRemover, RemoverConfig, default_weights_dir
from .trimmer import find_bounding_box

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="liftbg",
        description="Remove the background of an image and crop it to the subject.",
    )
    parser.add_argument(
        "input",
        type=Path,
        help="Source image.",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Destination PNG. Defaults to <input stem>_lifted.png next to the input.",
    )
    parser.add_argument(
        "--model",
        dest="model_name",
        default="isnet",
        choices=list(MODEL_REGISTRY.keys()),
        help="Segmentation model. Available: " + ", ".join(MODEL_REGISTRY.keys()),
    )
    parser.add_argument(
        "--weights-dir",
        type=Path,
        default=default_weights_dir(),
        help="Directory used to cache downloaded model weights.",
    )
    parser.add_argument(
        "--device",
        type=str,
        default="cpu",
        help="Inference device, e.g. cpu or cuda:0.",
    )
    parser.add_argument(
        "--tensorrt",
        dest="use_tensorrt",
        action="store_true",
        help="Try the TensorRT execution provider first (CUDA devices only).",
    )
    parser.add_argument(
        "--threshold",
        dest="instance_threshold",
        type=float,
        default=0.5,
        help="Minimum peak probability [0,1] for a mask channel to count as a subject.",
    )
    parser.add_argument(
        "--trim-workers",
        type=int,
        default=1,
        help="Threads used to scan rows when searching the bounding box.",
    )
    parser.add_argument(
        "--json",
        dest="json_report",
        type=Path,
        default=None,
        help="Optional path to write a JSON report for the run.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args(argv)


def _report(args: argparse.Namespace, status: Finished, config: RemoverConfig) -> Dict[str, object]:
    original, processed = status.original, status.processed
    box = find_bounding_box(processed)
    return {
        "input": str(args.input),
        "output": str(args.output),
        "model": config.model_name,
        "providers": config.onnx_providers(),
        "original_size": [original.width, original.height],
        "processed_size": [processed.width, processed.height],
        "bounding_box": list(box.as_tuple()) if box else None,
        "seconds": round(status.result.elapsed, 4),
    }


def run(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    args.input = args.input.expanduser()
    if args.output is None:
        args.output = args.input.with_name(f"{args.input.stem}_lifted.png")

    try:
        config = RemoverConfig(
            model_name=args.model_name,
            weights_dir=args.weights_dir,
            device=args.device,
            use_tensorrt=args.use_tensorrt,
            instance_threshold=args.instance_threshold,
            trim_workers=args.trim_workers,
        )
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}")

    processor = ImageProcessor(BackgroundRemover(config))
    processor.process(args.input)
    status = processor.wait()

    if isinstance(status, Failed):
        logger.error("Could not process %s: %s", args.input, status.message)
        return 1
    if not isinstance(status, Finished):
        logger.error("Processing %s did not complete.", args.input)
        return 1

    if not processor.save(status.processed, args.output):
        return 1
    print(f"[+] Wrote {args.output}")

    if args.json_report:
        args.json_report.parent.mkdir(parents=True, exist_ok=True)
        with args.json_report.open("w", encoding="utf-8") as handle:
            json.dump(_report(args, status, config), handle, indent=2)
        print(f"[+] Wrote report to {args.json_report}")
    return 0


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
