# statlab/cli/main.py
from __future__ import annotations
import logging
import sys

from statlab.cli.arg_parser import parse_args
from statlab.config.settings import settings
from statlab.core.exceptions import StatlabError


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if (verbose or settings.debug) else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def run_init(template, dest_path="analysis.yaml", overwrite=False) -> int:
    from statlab.utils.yaml_generator import generate_analysis_yaml

    try:
        generate_analysis_yaml(template=template, dest_path=dest_path, overwrite=overwrite)
    except (ValueError, FileExistsError, FileNotFoundError) as e:
        print(f"❌ Failed to create YAML: {e}")
        return 1
    return 0


def run_command(analysis, report=None) -> int:
    from statlab.run import run_from_yaml

    print(f"🧪 Starting analysis from: {analysis}")
    try:
        results = run_from_yaml(analysis, report_path=report, progress_callback=lambda msg: print(f"✅ {msg}"))
    except StatlabError as e:
        print(f"❌ {e}")
        return 1

    summary = results["summary"]
    print(f"✅ {summary['n_rows']} rows analysed, {summary['n_models']} model(s) fitted")
    if summary["selected_model"]:
        print(f"✅ Selected model: {summary['selected_model']}")
    for name in summary["failed_checks"]:
        print(f"⚠️  {name} failed; see the report for details")
    if results.get("report_path"):
        print(f"\n✅ Report saved to {results['report_path']}")
    return 0


def main(argv=None):
    args = parse_args(argv if argv is not None else sys.argv[1:])
    _configure_logging(args.verbose)
    if args.command == "init":
        sys.exit(run_init(args.template, dest_path=args.output, overwrite=args.overwrite))
    if args.command == "run":
        sys.exit(run_command(args.analysis, report=args.report))
    print(f"Unknown command: {args.command}")
    sys.exit(2)


if __name__ == "__main__":
    main()
