"""Main entry point for the Chromatic Tuner CLI."""

import signal
import sys
import argparse
import threading
from typing import List, Optional

from ..core.config import ConfigManager
from ..core.errors import ConfigurationError
from ..core.factory import ComponentFactory
from ..logging_config import get_logger, setup_logging
from ..note_types import Result

logger = get_logger("chromatic_tuner.cli.main")


def _log_note_change(result: Result) -> None:
    logger.info(f"Note: {result}")


def run_tuner(factory: ComponentFactory, implementation: str, duration: Optional[float], **input_params) -> int:
    """Run the tuner until the duration elapses or SIGINT is received.

    Args:
        factory: Factory used to build the pipeline
        implementation: Audio input implementation name
        duration: Seconds to run, or None to run until interrupted
        **input_params: Parameters for the audio input

    Returns:
        Exit code
    """
    done = threading.Event()

    def handle_interrupt(_signum, _frame):
        logger.info("Interrupted, shutting down")
        done.set()

    previous_handler = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        service = factory.create_tuner_service(
            audio_input=factory.create_audio_input(implementation, **input_params)
        )
        service.on_note_changed(_log_note_change)

        if not service.start():
            return 1
        try:
            done.wait(duration)
        finally:
            service.stop()

        logger.info(f"Last result: {service.latest()}")
        return 0
    finally:
        signal.signal(signal.SIGINT, previous_handler)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Command line arguments, or None to use sys.argv

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(description="Chromatic Tuner - Real-time pitch estimation")
    parser.add_argument(
        "--config-dir", default=None, help="Directory holding configuration files"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Live input command
    monitor_parser = subparsers.add_parser(
        "monitor", help="Track the pitch of the default audio input device"
    )
    monitor_parser.add_argument(
        "--duration", type=float, default=None, help="Run time in seconds (default: until Ctrl+C)"
    )
    monitor_parser.add_argument(
        "--sample-rate", type=int, default=None, help="Audio sample rate in Hz"
    )
    monitor_parser.add_argument(
        "--block-size", type=int, default=None, help="Frames per audio block"
    )

    # Synthetic tone command
    tone_parser = subparsers.add_parser(
        "tone", help="Track the pitch of a generated sine tone"
    )
    tone_parser.add_argument(
        "--frequency", type=float, default=440.0, help="Tone frequency in Hz"
    )
    tone_parser.add_argument(
        "--duration", type=float, default=3.0, help="Run time in seconds"
    )
    tone_parser.add_argument(
        "--sample-rate", type=int, default=None, help="Audio sample rate in Hz"
    )

    parsed_args = parser.parse_args(args)

    setup_logging("DEBUG" if parsed_args.debug else None)

    if parsed_args.command is None:
        parser.print_help()
        return 1

    factory = ComponentFactory(ConfigManager(parsed_args.config_dir))

    input_params = {}
    if parsed_args.sample_rate:
        input_params["sample_rate"] = parsed_args.sample_rate

    try:
        if parsed_args.command == "monitor":
            if parsed_args.block_size:
                input_params["frames_per_buffer"] = parsed_args.block_size
            return run_tuner(factory, "default", parsed_args.duration, **input_params)

        return run_tuner(
            factory, "synthetic", parsed_args.duration, frequency=parsed_args.frequency, **input_params
        )
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
