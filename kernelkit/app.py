"""kernelkit command line - Main entry point.

Usage examples:
    kernelkit canny photo.png edges.png --low 0.2 --high 0.5
    kernelkit segment photo.png segments.png --colors 4 --seed 7
    kernelkit convolve photo.png out.png --kernel "[[0,-1,0],[-1,5,-1],[0,-1,0]]"
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .config_manager import ConfigManager
from .errors import ConfigurationError, KernelkitError
from .image_processing import ImageProcessor, Kernel
from .models import CONFIG_FILE, BoundaryPolicy, Operation, ProcessingConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kernelkit",
        description="Convolution, edge detection and K-Means segmentation for images.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_FILE,
        help="JSON file with default options (default: %(default)s)",
    )
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Write the effective options back to --config",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )

    subparsers = parser.add_subparsers(dest="operation", required=True)

    def add_operation(operation: Operation, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(operation.value, help=help_text)
        sub.add_argument("input", type=Path, help="Input image")
        sub.add_argument("output", type=Path, help="Output image")
        return sub

    def add_gaussian_args(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--size", type=int, help="Gaussian kernel size (odd, >= 3)")
        sub.add_argument("--sigma", type=float, help="Gaussian standard deviation")

    blur = add_operation(Operation.BLUR, "Gaussian blur")
    add_gaussian_args(blur)

    add_operation(Operation.SOBEL, "Sobel gradient magnitude")

    canny = add_operation(Operation.CANNY, "Canny edge detection")
    canny.add_argument("--low", type=float, help="Low threshold ratio")
    canny.add_argument("--high", type=float, help="High threshold ratio")
    add_gaussian_args(canny)

    segment = add_operation(Operation.SEGMENT, "K-Means segmentation")
    segment.add_argument("--colors", type=int, help="Number of segments")
    segment.add_argument(
        "--palette",
        type=json.loads,
        help='Segment colors as JSON, e.g. "[[0,0,0],[255,255,255]]"',
    )
    segment.add_argument("--by-intensity", action="store_true")
    segment.add_argument("--max-iterations", type=int)
    segment.add_argument("--seed", type=int)

    compress = add_operation(Operation.COMPRESS, "Reduce to 2**depth colors")
    compress.add_argument("--depth", type=int, help="Color depth in bits")
    compress.add_argument("--seed", type=int)

    convolve = add_operation(Operation.CONVOLVE, "Apply a custom kernel")
    convolve.add_argument(
        "--kernel", type=json.loads, required=True, help="Kernel rows as JSON"
    )
    convolve.add_argument("--normalize", action="store_true")
    convolve.add_argument("--normalization-sum", type=float)
    convolve.add_argument("--factor", type=float)
    convolve.add_argument("--repeat", type=int)
    convolve.add_argument(
        "--boundary", choices=[policy.value for policy in BoundaryPolicy]
    )

    return parser


def _overrides(args: argparse.Namespace, mapping: "dict[str, str]") -> dict:
    """Collect the arguments that were actually given, renamed to option fields."""
    values = {}
    for arg_name, field_name in mapping.items():
        value = getattr(args, arg_name, None)
        if value is not None and value is not False:
            values[field_name] = value
    return values


def apply_arguments(config: ProcessingConfig, args: argparse.Namespace) -> ProcessingConfig:
    """Overlay command line options on a loaded configuration.

    Raises:
        ConfigurationError: If an overridden value is invalid
    """
    operation = Operation(args.operation)
    gaussian = _overrides(args, {"size": "size", "sigma": "sigma"})

    if operation is Operation.BLUR:
        config = replace(config, gaussian=replace(config.gaussian, **gaussian))
    elif operation is Operation.CANNY:
        canny = _overrides(
            args, {"low": "low_threshold_ratio", "high": "high_threshold_ratio"}
        )
        canny["gaussian"] = replace(config.canny.gaussian, **gaussian)
        config = replace(config, canny=replace(config.canny, **canny))
    elif operation is Operation.SEGMENT:
        segmentation = _overrides(
            args,
            {
                "colors": "colors",
                "palette": "colors",
                "by_intensity": "by_intensity",
                "max_iterations": "max_iterations",
                "seed": "random_state",
            },
        )
        config = replace(
            config, segmentation=replace(config.segmentation, **segmentation)
        )
    elif operation is Operation.COMPRESS:
        if args.depth is not None:
            config = replace(config, color_depth=args.depth)
        if args.seed is not None:
            config = replace(
                config,
                segmentation=replace(config.segmentation, random_state=args.seed),
            )
    elif operation is Operation.CONVOLVE:
        convolution = _overrides(
            args,
            {
                "normalize": "normalize",
                "normalization_sum": "normalization_sum",
                "factor": "factor",
                "repeat": "repeat",
                "boundary": "boundary",
            },
        )
        config = replace(
            config, convolution=replace(config.convolution, **convolution)
        )
    return config


def main(argv: "list[str] | None" = None) -> int:
    """Run one toolkit operation from the command line."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    manager = ConfigManager(args.config)
    try:
        config = apply_arguments(manager.load(), args)
        kernel = None
        if args.operation == Operation.CONVOLVE.value:
            try:
                kernel = Kernel.from_rows(args.kernel)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid kernel: {e}") from e

        processor = ImageProcessor(config)
        processed = processor.process(args.input, Operation(args.operation), kernel)
        processor.save(processed, args.output)
    except (KernelkitError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if processed.palette:
        print("Palette: " + ", ".join(str(color) for color in processed.palette))

    if args.save_config:
        success, error = manager.save(config)
        if not success:
            print(f"error: could not save config: {error}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
