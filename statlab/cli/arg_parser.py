import argparse


def build_parser():
    parser = argparse.ArgumentParser(prog="statlab", description="Run reproducible statistical analyses from YAML")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Clean, fit, validate and compare the models of an analysis file")
    run_parser.add_argument("analysis", help="Path to the analysis YAML file")
    run_parser.add_argument(
        "--report",
        type=str,
        default=None,
        help="Path to output DOCX report (overrides output.report_path). Example: --report reports/epa.docx"
    )

    init_parser = subparsers.add_parser("init", help="Generate a starter analysis YAML file")
    init_parser.add_argument("--template", default="starter", choices=["starter", "epa", "ohio", "remission"],
                             help="Template to copy (default: starter)")
    init_parser.add_argument(
        "--output", type=str, default="analysis.yaml",
        help="Destination path for the analysis YAML (default: analysis.yaml)"
    )
    init_parser.add_argument("--overwrite", action="store_true", help="Replace an existing file")
    return parser


def parse_args(argv=None):
    return build_parser().parse_args(argv)
