#!/usr/bin/env python3
"""
Build a sales forecast submission from the datathon spreadsheet.

Usage:
  pharma-forecast data/datathon.xlsx submissions/forecast.csv
  pharma-forecast data/datathon.xlsx out.xlsx --horizon 6 --models naive,ets --ensemble mean

Notes:
- settings come from config/forecast.yaml (or --config), flags win
- exits 1 on invalid input or a submission that fails validation,
  2 when the input or config file does not exist
"""
import argparse
import logging
import sys
from typing import List, Optional

from ..config import load_config, ENSEMBLE_METHODS, LEVELS
from ..loaders import load_datathon
from ..pipeline import run_forecast
from ..submission import build_submission, validate_submission, write_submission

logger = logging.getLogger('pharma_forecast')


def _model_list(value: str) -> List[str]:
    models = [m.strip() for m in value.split(',') if m.strip()]
    if not models:
        raise argparse.ArgumentTypeError("expected a comma-separated list of models")
    return models


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='pharma-forecast',
        description='Forecast monthly sales and write a submission file.',
    )
    parser.add_argument('input', help='Raw spreadsheet (.xlsx, .csv or .parquet)')
    parser.add_argument('output', help='Submission path (.csv or .xlsx)')
    parser.add_argument('--config', help='YAML config (default: config/forecast.yaml if found)')
    parser.add_argument('--horizon', type=int, help='Months to forecast')
    parser.add_argument('--level', choices=LEVELS, help='Submission aggregation level')
    parser.add_argument('--models', type=_model_list, help='Comma-separated model names')
    parser.add_argument('--ensemble', choices=ENSEMBLE_METHODS, help='Ensemble method')
    parser.add_argument('--quiet', action='store_true', help='Only print errors')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    verbose = not args.quiet

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        config = load_config(
            args.config,
            horizon=args.horizon,
            submission_level=args.level,
            models=args.models,
            ensemble_method=args.ensemble,
        )
        df = load_datathon(
            args.input,
            target_function=config.target_function,
            clip_negative=config.clip_negative,
            verbose=verbose,
        )
        run = run_forecast(df, config, show_progress=verbose)
        sub = build_submission(run.forecasts, level=config.submission_level)
        validate_submission(sub, config.horizon, level=config.submission_level)
        path = write_submission(sub, args.output, verbose=verbose)
    except FileNotFoundError as exc:
        print(f"✗ {exc}", file=sys.stderr)
        return 2
    except ValueError as exc:
        print(f"✗ {exc}", file=sys.stderr)
        return 1

    if verbose:
        print("\nValidation accuracy:")
        print(run.accuracy.round(3).to_string())
        print(f"\n✓ Done: {len(sub):,} rows at '{config.submission_level}' level -> {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
