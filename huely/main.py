# =============================================================================
# Huely - Interactive Session & CLI Entry Point
# =============================================================================
# Wires device selection, the capture orchestrator, the credential store and
# the vision client into an interactive terminal session:
#
#   1. Enumerate cameras and select one (auto-selected when only one exists)
#   2. Resolve the API key (credential file, then OPENAI_API_KEY)
#   3. Loop on commands: capture -> analyze -> render, switch camera,
#      configure key, clear screen, quit
#   4. On quit, sweep capture artifacts older than the retention window
# =============================================================================

import argparse
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv

from config import Config, get_config
from huely import __version__
from huely.capture import CaptureOrchestrator
from huely.client import VisionClient
from huely.credentials import CredentialStore
from huely.devices import list_devices, select_device
from huely.drivers import CameraDriver, get_driver
from huely.errors import HuelyError
from huely.ui import CAPTURE, CLEAR, CONFIGURE, QUIT, SWITCH, TerminalUI

logger = logging.getLogger(__name__)


class HuelySession:
    """
    One interactive capture-and-analyze session.

    Args:
        config:      The global Config instance.
        ui:          Terminal front end.
        driver:      Platform capture driver; chosen from sys.platform if omitted.
        credentials: Credential store; defaults to ``config.credentials_path``.
        prompt:      Optional prompt sent with every image.
    """

    def __init__(
        self,
        config: Config,
        ui: Optional[TerminalUI] = None,
        driver: Optional[CameraDriver] = None,
        credentials: Optional[CredentialStore] = None,
        prompt: Optional[str] = None,
    ):
        self._config = config
        self._ui = ui or TerminalUI()
        self._driver = driver or get_driver(config)
        self._orchestrator = CaptureOrchestrator(self._driver, config)
        self._credentials = credentials or CredentialStore(config.credentials_path)
        self._prompt = prompt
        self._client: Optional[VisionClient] = None
        self._device_id: Optional[str] = None

    @property
    def device_id(self) -> Optional[str]:
        return self._device_id

    # -----------------------------------------------------------------
    # Setup
    # -----------------------------------------------------------------

    def select_camera(self, device_id: Optional[str] = None) -> str:
        """Pick the camera, asking the user only when there is a choice."""
        if device_id is None:
            devices = list_devices(self._driver)
            device_id = select_device(devices, self._ui.choose_device)
            names = {device.id: device.display_name for device in devices}
            self._ui.show_status(f"Using: {names.get(device_id, device_id)}")
        self._device_id = device_id
        logger.info("Selected device %s via %s", device_id, self._driver.executable)
        return device_id

    def initialize_client(self) -> bool:
        """Build the vision client if an API key is available."""
        api_key = self._credentials.resolve_key()
        if not api_key:
            self._client = None
            self._ui.show_status(
                "OpenAI API key not configured. Press k to configure it, "
                "or set the OPENAI_API_KEY environment variable."
            )
            return False
        self._client = VisionClient.from_config(api_key, self._config)
        return True

    def configure_api_key(self) -> None:
        try:
            api_key = self._ui.prompt_api_key()
        except (EOFError, KeyboardInterrupt):
            self._ui.show_error("API key configuration cancelled")
            return
        self._credentials.set_key(api_key)
        if self.initialize_client():
            self._ui.show_success("API key configured successfully!")
        else:
            self._ui.show_error("Failed to configure API key")

    # -----------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------

    def capture_and_analyze(self) -> None:
        """
        Capture one image, analyze it and render the answer.

        Failures are reported as a single message; the session stays
        interactive. The captured file is deleted once analyzed.
        """
        if self._client is None:
            self._ui.show_error("OpenAI API key not configured. Press k to set it up.")
            return

        image_path = None
        try:
            self._ui.show_status("Capturing image...")
            image_path = self._orchestrator.capture_one(self._device_id)
            self._ui.show_status("Image captured! Analyzing...")
            analysis = self._client.analyze_image(image_path, self._prompt)
        except HuelyError as exc:
            self._ui.show_error(f"Failed to capture/analyze: {exc}")
            return
        except Exception as exc:
            logger.exception("Unexpected error during capture/analysis")
            self._ui.show_error(f"Failed to capture/analyze: {exc}")
            return
        finally:
            if image_path is not None and os.path.exists(image_path):
                os.remove(image_path)

        self._ui.show_response(analysis)

    def run(self, device_id: Optional[str] = None) -> int:
        """
        Initialize and run the command loop until the user quits.

        Returns:
            Process exit code: 0 on graceful quit, 1 on startup failure.
        """
        self._ui.show_welcome()
        try:
            self.select_camera(device_id)
        except HuelyError as exc:
            self._ui.show_error(f"Failed to initialize: {exc}")
            return 1
        self.initialize_client()
        self._ui.show_instructions()

        try:
            while True:
                command = self._ui.read_command()
                if command == QUIT:
                    break
                if command == CAPTURE:
                    self.capture_and_analyze()
                elif command == SWITCH:
                    self._switch_camera()
                elif command == CONFIGURE:
                    self.configure_api_key()
                elif command == CLEAR:
                    self._ui.clear_screen()
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received. Shutting down...")
        finally:
            self.stop()

        self._ui.show_status("Goodbye!")
        return 0

    def _switch_camera(self) -> None:
        try:
            self.select_camera()
        except HuelyError as exc:
            self._ui.show_error(f"Failed to switch webcam: {exc}")
            return
        self._ui.show_success("Webcam switched successfully!")

    def stop(self) -> None:
        """Remove artifacts older than the retention window."""
        removed = self._orchestrator.store.sweep(older_than=self._config.retention_seconds)
        logger.info("Session stopped (%d old artifact(s) removed).", removed)


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="huely",
        description="Capture a webcam snapshot and analyze it with a vision model.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--setup", action="store_true", help="Configure the API key and exit")
    parser.add_argument("--clear-key", action="store_true", help="Remove the stored API key and exit")
    parser.add_argument("--device", type=str, default=None, help="Camera id to use (skips selection)")
    parser.add_argument("--prompt", type=str, default=None, help="Prompt sent with every image")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    load_dotenv(override=False)

    config = get_config()
    if args.debug:
        config.debug = True

    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    credentials = CredentialStore(config.credentials_path)

    if args.clear_key:
        credentials.clear_key()
        print(f"API key removed from {credentials.path}")
        sys.exit(0)

    if args.setup:
        try:
            credentials.set_key(TerminalUI().prompt_api_key())
        except (EOFError, KeyboardInterrupt):
            print("\nSetup cancelled.")
            sys.exit(1)
        print(f"API key saved to {credentials.path}")
        sys.exit(0)

    try:
        session = HuelySession(config, credentials=credentials, prompt=args.prompt)
    except HuelyError as exc:
        print(f"Error: Failed to initialize: {exc}", file=sys.stderr)
        sys.exit(1)

    sys.exit(session.run(device_id=args.device))


if __name__ == "__main__":
    main()
