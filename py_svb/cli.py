"""Command line entry point for the streaming restart loop"""

import argparse
import sys
from typing import List, Optional

from .config import RunConfig
from .dag import DAG_FAMILIES
from .exceptions import SVBError
from .restart import StreamingRestartLoop


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run streaming variational Bayes with restarts over a directory of data files"
    )
    parser.add_argument('--config', type=str, help="Path to YAML run configuration")
    parser.add_argument('--model', choices=sorted(DAG_FAMILIES), help="Model family")
    parser.add_argument('--data', type=str, help="Directory holding the data files")
    parser.add_argument('--topics', type=int, help="States of the hidden variable")
    parser.add_argument('--iterations', type=int, help="Maximum VB iterations per window")
    parser.add_argument('--threshold', type=float, help="ELBO convergence threshold")
    parser.add_argument('--window-size', type=int, help="Instances per learner window")
    parser.add_argument('--seed', type=int, help="Seed of the shuffling RNG")
    parser.add_argument('--min-instances', type=int, help="Skip files with fewer instances")
    parser.add_argument('--class-name', type=str, help="Class attribute for naive Bayes")
    parser.add_argument('--schema', type=str, help="Schema YAML file")
    parser.add_argument('--output', type=str, help="File receiving the evaluation records")
    parser.add_argument('--quiet', action='store_true', help="Only print the total")
    return parser


def config_from_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> RunConfig:
    """Merge command line options over the YAML configuration"""
    overrides = dict(
        model_family=args.model,
        source_directory=args.data,
        topic_count=args.topics,
        max_iterations=args.iterations,
        convergence_threshold=args.threshold,
        window_size=args.window_size,
        seed=args.seed,
        min_instances=args.min_instances,
        class_name=args.class_name,
        schema_file=args.schema,
        output_path=args.output,
        verbose=False if args.quiet else None
    )
    if args.config:
        return RunConfig.from_yaml(args.config, **overrides)
    if args.data is None:
        parser.error("either --config or --data is required")
    return RunConfig.from_dict({k: v for k, v in overrides.items() if v is not None})


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(parser, args)
        loop = StreamingRestartLoop.from_config(config)
        total = loop.run()
    except SVBError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if args.quiet:
        print(f"TOTAL LOG: {total}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
