import sys
import json
import signal
import argparse
import logging
import threading

from core.detector_registry import DetectorRegistry
from core.engine import Engine, build_index
from core.errors import ConfigurationError, ScanCancelledError
from core.rules_validator import load_raw_rules, print_validation_report
from core.settings import LOG_LEVELS, Settings
from rules.rules_loader import DEFAULT_TECHS_DIR

EXIT_CONFIGURATION_ERROR = 2
EXIT_CANCELLED = 130


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Classify the technologies of a source tree into a component tree")
    parser.add_argument("path", nargs="?", help="Directory to scan")
    parser.add_argument("--output", "-o", type=str, help="Write the JSON result to this file instead of stdout")
    pretty = parser.add_mutually_exclusive_group()
    pretty.add_argument("--pretty", dest="pretty", action="store_true", default=None, help="Indent the JSON output (default)")
    pretty.add_argument("--compact", dest="pretty", action="store_false", help="Single-line JSON output")
    parser.add_argument("--exclude", type=str, nargs="+", help="Glob patterns of paths to skip (e.g., --exclude 'docs/*' '*.min.js')")
    parser.add_argument("--rules", type=str, nargs="+", help="Only use these rules, by tech id (e.g., --rules react postgresql)")
    parser.add_argument("--include-transitive", action="store_true", default=None, help="Report transitive dependencies from lock files")
    parser.add_argument("--no-lock-files", dest="use_lock_files", action="store_false", default=None, help="Ignore lock files, read manifests only")
    parser.add_argument("--no-default-excludes", dest="default_excludes", action="store_false", default=None, help="Also scan VCS metadata and tool cache directories (.git, node_modules, .venv, ...)")
    parser.add_argument("--root-id", type=str, help="Id of the root component (default: derived from the scan path)")
    parser.add_argument("--log-level", type=str, default=None, choices=list(LOG_LEVELS), help="Logging verbosity level (default: WARNING)")
    parser.add_argument("--list-detectors", action="store_true", help="List all available detectors and exit")
    parser.add_argument("--list-rules", action="store_true", help="List all loaded rules and exit")
    parser.add_argument("--validate-rules", action="store_true", help="Report duplicate and overlapping rules and exit")
    return parser


def _settings_from_args(args: argparse.Namespace, settings: Settings) -> Settings:
    """Command-line flags override the environment."""
    if args.exclude:
        settings.exclude_patterns = list(args.exclude)
    if args.rules:
        settings.filter_rules = list(args.rules)
    if args.include_transitive is not None:
        settings.include_transitive = args.include_transitive
    if args.use_lock_files is not None:
        settings.use_lock_files = args.use_lock_files
    if args.default_excludes is not None:
        settings.default_excludes = args.default_excludes
    if args.root_id:
        settings.root_id = args.root_id
    if args.pretty is not None:
        settings.pretty = args.pretty
    if args.log_level:
        settings.log_level = args.log_level
    return settings


def main(argv=None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = _settings_from_args(args, Settings.from_environment())
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR

    # Configure logging
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, settings.log_level),
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger = logging.getLogger(__name__)

    # Importing the engine registered every detector
    if args.list_detectors:
        print("Available detectors (registration order):")
        for name in DetectorRegistry.get_all_names():
            print(f"  - {name}")
        return 0

    if args.validate_rules:
        errors = print_validation_report(load_raw_rules(settings.rules_dir or DEFAULT_TECHS_DIR))
        return 1 if errors else 0

    if args.list_rules:
        try:
            index = build_index(settings)
        except ConfigurationError as e:
            logger.error(f"Invalid rules: {e}")
            return EXIT_CONFIGURATION_ERROR
        print("Loaded rules:")
        for tech, rule in sorted(index.rules.items()):
            print(f"  - {tech} ({rule.category}): {rule.name}")
        return 0

    if not args.path:
        parser.error("PATH is required unless using --list-detectors, --list-rules or --validate-rules")

    try:
        engine = Engine(settings)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIGURATION_ERROR

    cancel = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    try:
        logger.info(f"Starting scan of {args.path}")
        root = engine.analyse(args.path, cancel=cancel)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIGURATION_ERROR
    except ScanCancelledError as e:
        logger.warning(str(e))
        return EXIT_CANCELLED
    except NotADirectoryError as e:
        logger.error(str(e))
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    logger.info("Serializing component tree to JSON")
    output = json.dumps(root.to_dict(), indent=2 if settings.pretty else None)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output + "\n")
        logger.info(f"Wrote result to {args.output}")
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
