#!/usr/bin/env python3
"""
mbi - Malbolge interpreter CLI

Usage:
    python mbi.py <program.mb> [--strict] [--eof max|zero|crash]
                               [--max-steps N] [--trace] [-v] [-q]
                               [--log-file PATH]

Program output goes to stdout, raw bytes, flushed when the program stops.
Diagnostics go to stderr through logging.

Exit codes:
    0  program halted
    1  load error (file unreadable or malformed source)
    2  bad command line
    3  runtime crash
    4  console I/O failure
    5  terminated by host (--max-steps reached or Ctrl-C)

Examples:
    python mbi.py hello.mb
    echo hi | python mbi.py cat.mb --max-steps 100000
    python mbi.py prog.mb --strict --eof zero -v
"""

import argparse
import logging
import signal
import sys
import os
from pathlib import Path

# Allow running from project root or as module
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from malbolge_vm import __version__
from malbolge_vm.emu import MalbolgeVM, StopReason, EOF_PROFILES
from malbolge_vm.loader import LoadError
from malbolge_vm.periph.console import StreamConsole, ConsoleError

log = logging.getLogger('mbi')

EXIT_OK = 0
EXIT_LOAD_ERROR = 1
EXIT_USAGE = 2
EXIT_CRASH = 3
EXIT_IO_ERROR = 4
EXIT_TERMINATED = 5

EXIT_CODES = {
    StopReason.HALT:      EXIT_OK,
    StopReason.CRASH:     EXIT_CRASH,
    StopReason.IO_ERROR:  EXIT_IO_ERROR,
    StopReason.TIMEOUT:   EXIT_TERMINATED,
    StopReason.CANCELLED: EXIT_TERMINATED,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mbi",
        description="Malbolge interpreter",
        epilog="EOF policies: " + ", ".join(EOF_PROFILES.keys()),
    )
    parser.add_argument("source", help="Malbolge source file")
    parser.add_argument("--strict", action="store_true",
                        help="Reject source bytes that are not one of the "
                             "eight instructions at their position")
    parser.add_argument("--eof", default="max", choices=list(EOF_PROFILES.keys()),
                        help="Value IN gives at end of input: max=59048 "
                             "(default), zero=0, crash=stop with a crash")
    parser.add_argument("--max-steps", type=int, default=None,
                        help="Stop after N instructions (exit code 5)")
    parser.add_argument("--trace", action="store_true",
                        help="Log every executed instruction at DEBUG level")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase verbosity (-v, -vv)")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Suppress all diagnostics except errors")
    parser.add_argument("--log-file", type=str,
                        help="Write a DEBUG log to file")
    parser.add_argument("--version", action="version",
                        version=f"mbi {__version__}")
    return parser


def setup_logging(args):
    """Configure logging based on arguments. Console output goes to stderr."""
    if args.quiet:
        level = logging.ERROR
    elif args.verbose == 0:
        level = logging.WARNING
    elif args.verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    handlers = []

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    handlers.append(console)

    if args.log_file:
        log_path = Path(args.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if args.log_file else level,
        handlers=handlers,
        force=True
    )


def main(argv=None, stdin=None, stdout=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args)

    if args.max_steps is not None and args.max_steps < 0:
        log.error("--max-steps must not be negative")
        return EXIT_USAGE

    try:
        data = Path(args.source).read_bytes()
    except OSError as e:
        log.error("cannot read %s: %s", args.source, e)
        return EXIT_LOAD_ERROR

    console = StreamConsole(stdin, stdout)
    vm = MalbolgeVM(console=console, eof_value=EOF_PROFILES[args.eof])

    try:
        vm.load(data, strict=args.strict)
    except LoadError as e:
        log.error("could not initialize memory: %s", e)
        return EXIT_LOAD_ERROR

    if args.trace:
        vm.enable_trace()

    # First Ctrl-C stops at the next step boundary, a second one kills.
    def _on_sigint(signum, frame):
        signal.signal(signal.SIGINT, signal.default_int_handler)
        vm.cancel()

    previous = None
    try:
        previous = signal.signal(signal.SIGINT, _on_sigint)
    except ValueError:
        pass  # not the main thread

    try:
        reason = vm.run(max_steps=args.max_steps)
    except KeyboardInterrupt:
        log.error("interrupted")
        try:
            console.flush()
        except ConsoleError as e:
            log.error("flush failed: %s", e)
        return EXIT_TERMINATED
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    if reason is StopReason.CRASH:
        log.error("runtime crash: %s", vm.crash_reason)
        log.debug("memory at C:\n%s", vm.mem.hexdump(vm.regs.C, 32))
    elif reason is StopReason.IO_ERROR:
        log.error("I/O failure: %s", vm.io_error)
    elif reason in (StopReason.TIMEOUT, StopReason.CANCELLED):
        log.warning("%s after %d steps", vm.crash_reason, vm.regs.steps)

    return EXIT_CODES[reason]


if __name__ == "__main__":
    sys.exit(main())
