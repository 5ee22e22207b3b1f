"""
Model Deviation Analysis CLI
============================

Compares a reference (design) model against an observed (scan) model and
writes deviation reports, heatmaps and histograms.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from .core.alignment import align_models
from .core.deviation_engine import DeviationCalculator
from .core.elements import attribute_elements, regions_from_dicts
from .core.errors import InvalidArgumentError
from .core.report_export import DeviationReportExporter
from .core.types import ReferenceCorrespondence
from .core.visualization import DeviationVisualizer
from .utils.config import load_config
from .utils.logging_setup import setup_logging
from .utils.model_loader import load_model


def read_yaml_records(path: Path, kind: str) -> List[dict]:
    """
    Read a YAML list of mappings.

    Raises:
        InvalidArgumentError: If the document is not a list of mappings
    """
    with open(path, 'r') as f:
        records = yaml.safe_load(f) or []

    if not isinstance(records, list):
        raise InvalidArgumentError(f"{kind} file {path} must contain a list, got {type(records).__name__}")
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            raise InvalidArgumentError(f"{kind} entry #{i} in {path} must be a mapping, got {record!r}")

    return records


def load_correspondences(path: Path) -> List[ReferenceCorrespondence]:
    """
    Read correspondences from YAML:

        - name: northeast corner
          reference: [1.0, 0.0, 2.0]
          observed: [1.1, 0.0, 2.3]
    """
    return [
        ReferenceCorrespondence(
            reference=record.get('reference'),
            observed=record.get('observed'),
            name=record.get('name', f"#{i}"),
        )
        for i, record in enumerate(read_yaml_records(path, "Correspondence"))
    ]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Compare a reference model against an observed scan and report spatial deviations',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
PIPELINE:
  1. Load both models (PLY, OBJ, STL, GLB, PCD, ...)
  2. Optional alignment (bounding-box normalization or 1-2 correspondences)
  3. Grid downsampling + nearest-neighbor deviation (mm)
  4. Severity bands: ok < 10 mm <= warning < 30 mm <= critical
  5. Reports (TXT, CSV, JSON), heatmap PLY, histogram PNG

Examples:
  deviation-metrics --reference design.ply --observed scan.ply
  deviation-metrics --reference design.obj --observed scan.ply --grid-size 0.05 --correspondences points.yaml
        """
    )

    parser.add_argument('--reference', required=True, type=Path, help='Reference (design) model file')
    parser.add_argument('--observed', required=True, type=Path, help='Observed (scan) model file')
    parser.add_argument('--grid-size', type=float, help='Downsampling grid size in meters (default: 0.2)')
    parser.add_argument('--config', type=Path, help='YAML configuration file')
    parser.add_argument('--output-dir', type=Path, default=Path('deviation_output'), help='Output directory')
    parser.add_argument('--align', choices=['none', 'normalize'], help='Unsupervised alignment mode')
    parser.add_argument('--correspondences', type=Path, help='YAML file with reference/observed point pairs')
    parser.add_argument('--elements', type=Path, help='YAML file with element bounding boxes')
    parser.add_argument('--name', help='Report name (default: <reference>_vs_<observed>)')
    parser.add_argument('--log-level', help='Logging level (DEBUG, INFO, WARNING, ERROR)')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    if args.grid_size is not None:
        config.set('comparison', 'grid_size', value=args.grid_size)
    if args.align is not None:
        config.set('alignment', 'mode', value=args.align)
    if args.correspondences is not None:
        config.set('alignment', 'mode', value='correspondences')
    if args.log_level:
        config.set('logging', 'level', value=args.log_level)

    output_dir = args.output_dir
    logger = setup_logging(
        config.get('logging', 'level'),
        output_dir / 'logs' if config.get('logging', 'save_to_file') else None,
    )

    report_name = args.name or f"{args.reference.stem}_vs_{args.observed.stem}"

    try:
        reference = load_model(args.reference)
        observed = load_model(args.observed)

        mode = config.get('alignment', 'mode')
        if mode == 'normalize':
            pair = align_models(
                reference, observed,
                target_size=config.get('alignment', 'target_size'),
                center=config.get('alignment', 'center'),
                ground=config.get('alignment', 'ground'),
            )
        elif mode == 'correspondences':
            if args.correspondences is None:
                raise InvalidArgumentError("Alignment mode 'correspondences' requires --correspondences")
            pair = align_models(reference, observed, load_correspondences(args.correspondences))
            if pair is None:
                logger.warning("No complete correspondences; comparing unaligned models")
        else:
            pair = None

        if pair is not None:
            reference.apply_alignment(pair.reference)
            observed.apply_alignment(pair.observed)
            logger.info(f"Applied '{pair.method}' alignment")

        calculator = DeviationCalculator(**config.calculator_kwargs(), logger=logger)
        analysis = calculator.compare(reference, observed)

        if args.elements is not None:
            regions = regions_from_dicts(read_yaml_records(args.elements, "Element"))
            analysis = attribute_elements(analysis, regions, logger)

    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error(str(e))
        return 1

    if analysis.is_empty:
        logger.warning("Deviation analysis is empty (no comparable points)")

    exporter = DeviationReportExporter(output_dir, logger)
    if config.get('output', 'save_text'):
        exporter.save_text(analysis, report_name, args.reference.name, args.observed.name,
                           config.get('output', 'max_report_points'))
    if config.get('output', 'save_csv'):
        exporter.save_csv(analysis, report_name)
    if config.get('output', 'save_json'):
        exporter.save_json(analysis, report_name, args.reference.name, args.observed.name)

    visualizer = DeviationVisualizer(output_dir, logger)
    if config.get('output', 'save_heatmap') and not analysis.is_empty:
        visualizer.save_heatmap(analysis, report_name)
    if config.get('output', 'save_histogram'):
        visualizer.save_histogram(analysis, report_name)

    stats = analysis.statistics
    logger.info(f"Summary: {stats.total_points} points, avg={stats.avg_deviation:.1f}mm, "
                f"max={stats.max_deviation:.1f}mm, ok/warning/critical="
                f"{stats.ok_count}/{stats.warning_count}/{stats.critical_count}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
