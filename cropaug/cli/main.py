"""
cropaug Command Line Interface

Provides commands for generating crop variants, applying filters and
computing image statistics.
"""

import argparse
import sys

from cropaug import __version__


def _add_processing_arguments(parser: argparse.ArgumentParser) -> None:
    """Filter flags shared by generate and process"""
    group = parser.add_argument_group("processing")
    group.add_argument("--brightness", type=float, help="Brightness adjustment (-100..100)")
    group.add_argument("--contrast", type=float, help="Contrast adjustment (-100..100)")
    group.add_argument("--saturation", type=float, help="Saturation adjustment (-100..100)")
    group.add_argument("--hue", type=float, help="Hue rotation in degrees (-180..180)")
    group.add_argument("--blur", type=float, help="Gaussian blur radius (0..10)")
    group.add_argument("--sharpen", type=float, help="Sharpen intensity (0..2)")
    group.add_argument("--noise", type=float, help="Noise intensity (0..100)")
    group.add_argument("--rotation", type=float, help="Rotation in degrees, clockwise (-180..180)")
    group.add_argument("--flip-h", action="store_true", help="Flip horizontally")
    group.add_argument("--flip-v", action="store_true", help="Flip vertically")
    group.add_argument(
        "--random-augment",
        action="store_true",
        help="Draw random filter settings instead of using the flags above",
    )
    group.add_argument("--config", help="YAML config file (flags override file values)")
    group.add_argument("--seed", type=int, help="Random seed for reproducible output")


def create_parser():
    """Create command line argument parser"""

    parser = argparse.ArgumentParser(
        prog="cropaug",
        description="Anchor-based crop augmentation - generate randomized crop variants",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--version", action="version", version=f"cropaug {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # generate - Generate crop variants around an anchor
    gen_p = subparsers.add_parser("generate", help="Generate randomized crop variants")
    gen_p.add_argument("-i", "--input", required=True, help="Input image file")
    gen_p.add_argument("-o", "--output", required=True, help="Output directory")
    gen_p.add_argument("-a", "--anchor", help="Anchor rectangle (x,y,width,height)")
    gen_p.add_argument("-n", "--count", type=int, help="Number of variants (default: 10)")
    gen_p.add_argument(
        "-e",
        "--expansion",
        metavar="MIN,MAX",
        help="Expansion percent range (default: 0,0). Use --expansion=-20,30 for negative values",
    )
    gen_p.add_argument(
        "--aspect-jitter", metavar="LO,HI", help="Random width/height ratio range (e.g. 0.5,2)"
    )
    gen_p.add_argument(
        "--no-out-of-bounds",
        action="store_true",
        help="Keep crops inside the image instead of padding with black",
    )
    gen_p.add_argument(
        "-w", "--workers", type=int, help="Number of parallel workers (default: auto-detect)"
    )
    gen_p.add_argument(
        "--threads", action="store_true", help="Use worker threads instead of processes"
    )
    gen_p.add_argument(
        "--format", choices=["png", "jpg"], default="png", help="Output image format (default: png)"
    )
    gen_p.add_argument(
        "--stats", action="store_true", help="Write per-variant statistics to stats.yaml"
    )
    _add_processing_arguments(gen_p)

    # process - Apply the filter pipeline to one image
    proc_p = subparsers.add_parser("process", help="Apply filters to an image")
    proc_p.add_argument("-i", "--input", required=True, help="Input image file")
    proc_p.add_argument("-o", "--output", required=True, help="Output image file")
    _add_processing_arguments(proc_p)

    # stats - Compute channel statistics
    stats_p = subparsers.add_parser("stats", help="Compute image channel statistics")
    stats_p.add_argument("-i", "--input", required=True, help="Input image file")
    stats_p.add_argument("-o", "--output", help="Write full report (with histograms) to YAML")

    return parser


def _resolve_config(args):
    """Merge the optional YAML config with command line overrides"""
    from cropaug.core.config import AugmentConfig, load_config, parse_anchor, parse_pair
    from cropaug.image import ProcessingOptions

    config = load_config(args.config) if args.config else AugmentConfig()

    if args.seed is not None:
        config.seed = args.seed

    if args.command == "generate":
        if args.anchor:
            config.anchor = parse_anchor(args.anchor)
        if args.count is not None:
            config.count = args.count
        if args.expansion:
            config.expansion = parse_pair(args.expansion, "expansion")
        if args.aspect_jitter:
            config.aspect_jitter = parse_pair(args.aspect_jitter, "aspect_jitter")
        if args.no_out_of_bounds:
            config.allow_out_of_bounds = False
        if args.workers is not None:
            config.workers = args.workers

    overrides = {
        name: getattr(args, name)
        for name in ("brightness", "contrast", "saturation", "hue", "blur", "sharpen", "noise", "rotation")
        if getattr(args, name) is not None
    }
    if args.flip_h:
        overrides["flip_horizontal"] = True
    if args.flip_v:
        overrides["flip_vertical"] = True
    if overrides:
        merged = config.processing.to_dict()
        merged.update(overrides)
        config.processing = ProcessingOptions.from_dict(merged)

    return config


def main():
    """Main entry point for CLI"""

    parser = create_parser()
    args = parser.parse_args()

    # Setup logging using core logger system
    import logging

    from cropaug.core.logger import get_logger, setup_logger

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logger = setup_logger(name="cropaug", level=log_level)

    if not args.command:
        parser.print_help()
        return 0

    try:
        from pathlib import Path

        import numpy as np

        from cropaug.core import load_image, save_image

        if args.command == "generate":
            import yaml

            from cropaug.core import BatchGenerationError
            from cropaug.engine import CropAugmentationOrchestrator, WorkerPool
            from cropaug.image import apply_processing, compute_stats, random_augmentation

            config = _resolve_config(args)
            request = config.build_request()
            rng = np.random.default_rng(config.seed)

            logger.info(f"Loading image: {args.input}")
            source = load_image(args.input)

            options = random_augmentation(rng) if args.random_augment else config.processing
            preprocessed = None
            if not options.is_identity():
                logger.info(f"Pre-processing with {options}")
                preprocessed = apply_processing(source, options, rng)

            output_dir = Path(args.output)
            output_dir.mkdir(parents=True, exist_ok=True)

            failed = None
            with WorkerPool(size=config.workers, use_threads=args.threads) as pool:
                orchestrator = CropAugmentationOrchestrator(pool=pool, rng=rng)
                try:
                    variants = orchestrator.generate(source, request, preprocessed)
                except BatchGenerationError as e:
                    failed = e
                    variants = e.variants

            report = {}
            saved = 0
            for variant in variants:
                filename = f"variant_{variant.index:04d}.{args.format}"
                if variant.buffer.pixel_count == 0:
                    logger.warning(
                        f"Skipping {filename}: expansion {variant.expansion_percent:.1f}% "
                        f"leaves an empty {variant.buffer.width}x{variant.buffer.height} crop"
                    )
                    continue
                save_image(variant.buffer, output_dir / filename)
                saved += 1
                logger.debug(
                    f"{filename}: {variant.buffer.width}x{variant.buffer.height}, "
                    f"aspect ratio {variant.aspect_ratio:.2f}"
                )
                if args.stats:
                    stats = compute_stats(variant.buffer)
                    report[filename] = {
                        "aspect_ratio": round(float(variant.aspect_ratio), 4),
                        "expansion_percent": round(variant.expansion_percent, 4),
                        "mean": [round(v, 4) for v in stats.mean],
                        "std": [round(v, 4) for v in stats.std],
                    }

            if args.stats:
                with open(output_dir / "stats.yaml", "w", encoding="utf-8") as f:
                    yaml.safe_dump(report, f, sort_keys=True)

            logger.info(f"Saved {saved} variants to {output_dir}")
            if failed is not None:
                logger.error(str(failed))
                return 1

        elif args.command == "process":
            from cropaug.image import apply_processing, random_augmentation

            config = _resolve_config(args)
            rng = np.random.default_rng(config.seed)
            options = random_augmentation(rng) if args.random_augment else config.processing

            source = load_image(args.input)
            result = apply_processing(source, options, rng)
            save_image(result, args.output)
            logger.info(
                f"Processed {source.width}x{source.height} -> {result.width}x{result.height}, "
                f"saved to {args.output}"
            )

        elif args.command == "stats":
            import yaml

            from cropaug.image import compute_stats

            stats = compute_stats(load_image(args.input))
            logger.info(f"Size: {stats.width}x{stats.height}")
            logger.info("Mean (R, G, B): " + ", ".join(f"{v:.2f}" for v in stats.mean))
            logger.info("Std  (R, G, B): " + ", ".join(f"{v:.2f}" for v in stats.std))

            if args.output:
                output_path = Path(args.output)
                output_path.parent.mkdir(parents=True, exist_ok=True)
                with open(output_path, "w", encoding="utf-8") as f:
                    yaml.safe_dump(stats.to_dict(), f, sort_keys=False)
                logger.info(f"Saved report to {output_path}")

        else:
            logger.error(f"Unknown command: {args.command}")
            parser.print_help()
            return 1

        return 0

    except KeyboardInterrupt:
        logger.warning("\n\nOperation cancelled by user (Ctrl+C)")
        return 130  # Standard exit code for SIGINT

    except Exception as e:
        logger = get_logger(__name__)
        logger.exception(f"Error: {str(e)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
