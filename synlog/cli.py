"""synlog — filter, correlate, and summarize Synapse request logs."""

import logging
import sys
from argparse import ArgumentParser

from synlog.config import load_config, resolve_options
from synlog.errors import ConfigError
from synlog.filters import build_filter_chain, compile_pattern
from synlog.formatter import get_formatter
from synlog.pipeline import run
from synlog.reader import expand_paths, open_sources

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="synlog",
        description=(
            "Print Synapse request log lines, each preceded by the diagnostic "
            "lines logged while that request was in flight."
        ),
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="Log file path(s) or glob pattern(s); '-' or none reads stdin",
    )
    parser.add_argument(
        "-c", "--config",
        help="YAML config file (default: $SYNLOG_CONFIG if set)",
    )
    parser.add_argument(
        "-b", "--bundle",
        action="append",
        default=[],
        help="Apply a named option bundle from the config file (repeatable)",
    )
    parser.add_argument(
        "-f", "--filter",
        action="append",
        default=[],
        metavar="EXPR",
        help="Keep requests matching 'field OP value', OP one of = != ~ !~ (repeatable, ANDed)",
    )
    parser.add_argument(
        "-g", "--grep",
        metavar="REGEX",
        help="Skip raw lines not matching REGEX before parsing",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "-F", "--format",
        metavar="TEMPLATE",
        help="Output template with ${field} references, or a format name from the config",
    )
    output.add_argument(
        "-j", "--json",
        action="store_true",
        help="Output one JSON object per request",
    )
    parser.add_argument(
        "--fields",
        help="Comma-separated fields to print (or to include in JSON output)",
    )
    parser.add_argument(
        "-t", "--tally",
        action="store_true",
        help="Count identical output lines instead of printing them",
    )
    parser.add_argument(
        "-w", "--window",
        type=float,
        help="Seconds to hold diagnostic lines waiting for their request (default: 600)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr (-vv for debug)",
    )
    return parser


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s [synlog] %(levelname)s %(message)s",
        stream=sys.stderr,
    )


def run_pipeline(args) -> None:
    """Compile everything up front, then stream the sources."""
    config = load_config(args.config)
    fields = [f.strip() for f in args.fields.split(",") if f.strip()] if args.fields else None
    options = resolve_options(
        config,
        bundle_names=args.bundle,
        filters=args.filter,
        template=args.format,
        fields=fields,
        json_output=args.json,
        tally=args.tally,
        grep=args.grep,
        window=args.window,
    )
    logger.debug("Resolved options: %s", options)

    prefilter = compile_pattern(options.grep) if options.grep else None
    predicate = build_filter_chain(options.filters)
    formatter = get_formatter(
        template=options.template,
        fields=list(options.fields) or None,
        json_output=options.json_output,
    )
    paths = expand_paths(args.files)

    run(
        open_sources(paths),
        prefilter=prefilter,
        predicate=predicate,
        formatter=formatter,
        tally=options.tally,
        window=options.window,
    )


def main():
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.verbose)
    try:
        run_pipeline(args)
    except (ConfigError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except (KeyboardInterrupt, BrokenPipeError):
        sys.exit(0)


if __name__ == "__main__":
    main()
