"""
Command-line interface for b64filter using Click.
"""

import sys
from typing import Optional, Tuple

import click

from .app_logger import AppLogger, set_default_logger
from .errors import B64FilterError
from .filter_config import FilterConfig
from .logging_config import (
    ConfigurableAppLogger,
    HandlerConfig,
    LogHandler,
    VerbosityLevel,
    logging_config_from_env,
    parse_log_format,
)
from .multiplexer import DocumentMultiplexer


def _configure_logging(
    verbose: int,
    quiet: bool,
    debug: bool,
    log_level: Optional[str],
    log_format: Optional[str],
    log_file: Optional[str],
) -> AppLogger:
    """
    Build the run's logger and make it the default.

    Starts from the B64FILTER_LOG_* environment; options given on the
    command line override it.
    """
    config = logging_config_from_env()

    if quiet or verbose or debug:
        config.verbosity = VerbosityLevel.QUIET if quiet else VerbosityLevel.VERBOSE
        # A verbosity flag outranks a level from the environment
        config.global_level = None

    # Explicit level wins over verbosity flags
    if log_level:
        config.global_level = log_level.upper()

    if log_format:
        config.global_format = parse_log_format(log_format)

    if log_file:
        config.handlers = [
            handler
            for handler in config.handlers
            if handler.type not in (LogHandler.FILE, LogHandler.ROTATING_FILE)
        ]
        config.handlers.append(
            HandlerConfig(type=LogHandler.ROTATING_FILE, filename=log_file)
        )

    logger = ConfigurableAppLogger(config)
    set_default_logger(logger)
    return logger


def version_callback(ctx, _, value):
    """Callback for the version option that prints the version and exits."""
    if not value or ctx.resilient_parsing:
        return
    from . import __version__

    click.echo(f"b64filter version {__version__}")
    ctx.exit()


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    }
)
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED,
                metavar="FILTER [ARGS]...")
@click.option("--debug", "-d", is_flag=True, help="Debugging output")
@click.option(
    "--progress",
    "-p",
    type=click.IntRange(min=0),
    default=None,
    help="Report progress every N documents (default 100, 0 disables)",
)
@click.option(
    "--ledger-capacity",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum documents in flight inside the filter (default 32)",
)
@click.option(
    "--channel-size",
    type=click.IntRange(min=1),
    default=None,
    help="Decoded documents buffered ahead of the filter (default 16)",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity",
)
@click.option(
    "--quiet", "-q", is_flag=True, help="Reduce output to warnings and errors only"
)
@click.option(
    "--log-level",
    type=click.Choice(
        ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False
    ),
    help="Set explicit log level (overrides verbose/quiet)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "simple", "detailed"], case_sensitive=False),
    default=None,
    help="Log output format (default simple)",
)
@click.option(
    "--log-file", type=click.Path(), help="Write logs to file (in addition to stderr)"
)
@click.option(
    "--version",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=version_callback,
    help="Show version and exit",
)
@click.help_option("--help", "-h")
def main(
    command: Tuple[str, ...],
    debug: bool,
    progress: Optional[int],
    ledger_capacity: Optional[int],
    channel_size: Optional[int],
    verbose: int,
    quiet: bool,
    log_level: Optional[str],
    log_format: Optional[str],
    log_file: Optional[str],
) -> None:
    """
    Run FILTER over base64 encoded documents.

    Standard input and output are base64 encoded, one document or record per
    line. Each document is passed in decoded form through the filter
    program, and the result is encoded again.

    \b
    Example:
        $ < test b64filter cat > test.cat
        2020/02/16 12:15:29 DocumentMultiplexer.run: processed 2 documents
        $ diff test test.cat
        $

    The filter program is executed once and fed the entire set of
    documents. It must therefore produce exactly one line of output per
    line of input, without holding lines back; otherwise b64filter hangs
    or fails.
    """
    try:
        logger = _configure_logging(
            verbose, quiet, debug, log_level, log_format, log_file
        )
        config = FilterConfig.from_env(
            command,
            ledger_capacity=ledger_capacity,
            channel_size=channel_size,
            progress_every=progress,
            debug=debug,
        )
        multiplexer = DocumentMultiplexer(
            config,
            sys.stdin.buffer,
            sys.stdout.buffer,
            sys.stderr.buffer,
            logger=logger,
        )
        multiplexer.run()

    except KeyboardInterrupt:
        if verbose:
            click.echo("\nReceived interrupt signal, shutting down...", err=True)
        sys.exit(130)
    except (B64FilterError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        if verbose or debug:
            import traceback

            click.echo(traceback.format_exc(), err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
