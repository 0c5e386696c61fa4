"""Main application entry point for VideoScribe."""

import sys
import argparse
import logging
from pathlib import Path
from typing import List

from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import VideoScribeConfig, DEFAULT_CONFIG_FILE
from .media.transformer import MediaTransformer
from .models.transcription import MODELS
from .services.state_controller import StateController
from .services.state_publisher import StatePublisher
from .storage.preference_store import PreferenceStore
from .transcription.client import TranscriptionClient
from .ui.console_screen import ConsoleScreen

logger = logging.getLogger(__name__)


class App:
    """Wires the components together for one command-line invocation."""

    def __init__(self, config_path: str, log_level: str = None):
        # Load configuration
        self.config = VideoScribeConfig(config_path)
        # Set up logging (override config with command line if specified)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)

    def init(self):
        logger.info("Initializing services...")
        host, port = self.config.get_server_address()
        data_dir = Path(self.config.get_data_directory())

        self.store = PreferenceStore(self.config.get_preferences_path())
        self.transformer = MediaTransformer(
            data_dir / "media",
            video_filename=self.config.get('media.video_filename', 'video.mp4'),
            audio_filename=self.config.get('media.audio_filename', 'audio.m4a'),
            audio_bitrate=self.config.get('media.audio_bitrate', '128k'),
        )
        self.client = TranscriptionClient(host, port, timeout=self.config.get_timeout())
        self.publisher = StatePublisher()
        self.screen = ConsoleScreen()
        self.controller = StateController(
            self.store, self.transformer, self.client, self.publisher,
            default_model=self.config.get_model(),
        )

    def run(self, args: argparse.Namespace) -> int:
        command = args.command or "show"
        # Only show polls on startup, check polls anyway and other commands must not wait on the service
        self.controller.rehydrate(resume_pending=command == "show")

        if command == "select":
            if not self.controller.select_video(args.video):
                return 1
        elif command == "summary":
            self.controller.set_create_summary(args.value == "on")
        elif command == "start":
            if not self.controller.start_transcription(args.model, args.summary):
                return 1
        elif command == "check":
            self.controller.check_status()
        elif command == "reset":
            self.controller.reset()

        # Background jobs die with the process, let them report first
        if not self.controller.wait_for_pending(timeout=args.wait):
            logger.warning("Background jobs still running at exit")
            self.screen.console.print("[yellow]Still working in the background, results may be lost[/yellow]")

        self.screen.render(self.controller.stage)
        return 0

    def cleanup(self):
        if hasattr(self, "client"):
            self.client.close(timeout=5.0)
        if hasattr(self, "screen"):
            self.screen.close()


def setup_logging(config, level: str = "INFO") -> None:
    """Log everything to the configured file; warnings also go to stderr via rich."""
    log_file = Path(config.get('logging.file_path', 'data/logs/videoscribe.log'))
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers: List[logging.Handler] = [file_handler]

    if config.get('logging.console_output', True):
        # stdout belongs to the screen
        console_handler = RichHandler(console=Console(stderr=True), show_path=False)
        console_handler.setLevel(logging.WARNING)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info(f"VideoScribe {__version__} starting up (log file: {log_file}, level: {level})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="VideoScribe - transcribe and summarize local videos",
        epilog="State is kept between runs: select, start, then check until the transcript arrives."
    )

    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_CONFIG_FILE,
        help=f"Path to configuration YAML file (default: {DEFAULT_CONFIG_FILE})"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )

    parser.add_argument(
        "--wait",
        type=float,
        default=600.0,
        help="Seconds to wait for background jobs before exiting (default: 600)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"VideoScribe v{__version__}"
    )

    subparsers = parser.add_subparsers(dest="command")

    select_parser = subparsers.add_parser("select", help="Choose the video to transcribe")
    select_parser.add_argument("video", help="Path or file:// URI of the video")

    summary_parser = subparsers.add_parser("summary", help="Turn summary creation on or off")
    summary_parser.add_argument("value", choices=["on", "off"])

    start_parser = subparsers.add_parser("start", help="Extract the audio and submit it for transcription")
    start_parser.add_argument("--model", choices=MODELS, help="Whisper model (default: from config)")
    summary_group = start_parser.add_mutually_exclusive_group()
    summary_group.add_argument("--summary", dest="summary", action="store_true", default=None,
                               help="Also create a summary")
    summary_group.add_argument("--no-summary", dest="summary", action="store_false", default=None,
                               help="Transcript only")

    subparsers.add_parser("check", help="Check whether the transcription has finished")
    subparsers.add_parser("reset", help="Forget the video and all results")
    subparsers.add_parser("show", help="Show the current state")

    return parser


def main() -> None:
    """Main entry point for VideoScribe."""
    args = build_parser().parse_args()

    try:
        app = App(args.config, args.log_level)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    exit_code = 1
    try:
        app.init()
        exit_code = app.run(args)
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        exit_code = 130
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        logging.error(f"Application error: {e}", exc_info=True)
    finally:
        app.cleanup()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
