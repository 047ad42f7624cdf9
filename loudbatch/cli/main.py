"""
loudbatch command line interface

Subcommands:
- analyze: batch loudness measurement with status classification
- normalize: run a normalization script and follow its progress
"""

import argparse
import sys
from typing import List, Optional

from ..core.exceptions import LoudBatchError
from ..reports import SORT_KEYS
from ..utils.logging_config import setup_logging
from .commands import CLICommands
from .config import load_config_from_args


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands"""

    parser = argparse.ArgumentParser(
        prog='loudbatch',
        description="loudbatch - batch loudness analysis and normalization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s analyze /path/to/music                  # Analyse a folder
  %(prog)s analyze a.mp3 b.m4a --workers 4          # Analyse files with 4 workers
  %(prog)s analyze /music --report out.csv --sort status
  %(prog)s normalize /music --script normal.sh      # Run the normalization script
        """
    )

    # Global options
    parser.add_argument('--config', metavar='FILE',
                        help='Configuration file (default: platform config path)')
    log_group = parser.add_argument_group('Logging')
    log_group.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                           help='Console log level (default: INFO)')
    log_group.add_argument('--log-dir', metavar='DIR',
                           help='Log directory (default: ~/.loudbatch/logs)')
    log_group.add_argument('--no-console-log', action='store_true',
                           help='Only log to files')

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    # analyze
    analyze = subparsers.add_parser('analyze', help='Measure loudness of audio files')
    analyze.add_argument('paths', nargs='+', metavar='PATH',
                         help='Audio files or folders')
    analyze.add_argument('--workers', type=int, metavar='N',
                         help='Number of parallel analyses (default: min(8, CPUs - 1))')
    analyze.add_argument('--timeout', type=float, metavar='SECONDS',
                         help='Timeout per file (default: 60)')
    analyze.add_argument('--no-recursive', action='store_true',
                         help='Do not descend into subfolders')
    analyze.add_argument('--report', metavar='FILE',
                         help='Export the results to FILE')
    analyze.add_argument('--format', choices=['json', 'csv'],
                         help='Report format (default: from the file extension)')
    analyze.add_argument('--sort', choices=SORT_KEYS,
                         help='Result order (default: input order)')
    analyze.add_argument('--ffmpeg', metavar='PATH', help='ffmpeg executable')
    analyze.add_argument('--ffprobe', metavar='PATH', help='ffprobe executable')
    analyze.add_argument('--quiet', action='store_true', help='Hide the progress bar')

    # normalize
    normalize = subparsers.add_parser('normalize', help='Run the normalization script on a folder')
    normalize.add_argument('root', metavar='ROOT', help='Folder to normalize')
    normalize.add_argument('--script', metavar='FILE',
                           help='Normalization script (default: LOUDBATCH_NORMALIZE_SCRIPT)')
    normalize.add_argument('--interpreter', metavar='PATH',
                           help='Interpreter running the script (default: /bin/bash)')
    normalize.add_argument('--results-csv', metavar='FILE',
                           help='Export the ###RESULT rows to FILE')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Console script entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    config = load_config_from_args(args)
    try:
        app_config = config.load_config()['app']
    except LoudBatchError as e:
        print(f"❌ Configuration Error: {e}")
        return 1

    setup_logging(
        log_dir=args.log_dir or app_config.get('log_dir'),
        console_level=args.log_level or app_config.get('log_level') or 'INFO',
        enable_console=not args.no_console_log,
    )

    commands = CLICommands(config)
    if args.command == 'analyze':
        return commands.analyze_command(args)
    if args.command == 'normalize':
        return commands.normalize_command(args)

    parser.print_help()
    return 1


if __name__ == '__main__':
    sys.exit(main())
