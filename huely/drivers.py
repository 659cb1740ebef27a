# =============================================================================
# Huely - Platform Camera Drivers
# =============================================================================
# Each operating system ships a different still-capture utility with its own
# flags, device handles and output quirks. A CameraDriver hides one of them
# behind the same two operations: probing attached devices and invoking a
# single capture into a destination file.
#
#   Linux   : fswebcam   (device nodes /dev/videoN, warm-up frame skipping)
#   macOS   : imagesnap  (devices addressed by name)
#   Windows : CommandCam (devices addressed by 1-based number, writes BMP)
# =============================================================================

import logging
import os
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import List, Optional

from config import Config
from huely.errors import CaptureError, DeviceError

logger = logging.getLogger(__name__)

# Timeout for enumeration helpers (device lists, friendly names)
_QUERY_TIMEOUT_SECONDS = 10.0

# Device handle meaning "whatever the tool uses by default"
DEFAULT_DEVICE_ID = "0"


def _query(command: List[str]) -> Optional[str]:
    """
    Run an enumeration command and return its stdout.

    Enumeration is best-effort: a missing tool, a non-zero exit or a timeout
    returns None and is only logged at debug level.
    """
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=_QUERY_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("Query %s failed: %s", command[0], exc)
        return None

    if result.returncode != 0:
        logger.debug("Query %s exited with status %d", command[0], result.returncode)
        return None
    return result.stdout


class CameraDriver(ABC):
    """
    Base class for the per-platform capture utilities.

    Args:
        config: The Config instance with resolution, quality and warm-up values.
    """

    executable: str = ""
    install_hint: str = ""
    # Extension the tool expects on the raw output path ("" = none)
    raw_extension: str = ""

    def __init__(self, config: Config):
        self._config = config

    @abstractmethod
    def probe_devices(self) -> List[str]:
        """Return the handles of attached cameras, possibly empty."""
        ...

    def probe_names(self) -> List[str]:
        """Return friendly names in the same order as probe_devices()."""
        return []

    @abstractmethod
    def build_command(self, device_id: str, destination: str) -> List[str]:
        """Build the argv that captures one still from ``device_id``."""
        ...

    def invoke(self, device_id: str, destination: str) -> str:
        """
        Capture one still image from ``device_id`` into ``destination``.

        Args:
            device_id:   Handle of the selected camera.
            destination: Path the tool is asked to write to.

        Returns:
            The path the tool was asked to write. The tool may still have
            picked a different extension; the normalizer resolves that.

        Raises:
            CaptureError: If the tool is missing, exits non-zero or times out.
        """
        command = self.build_command(device_id, destination)
        timeout = self._config.capture_timeout_seconds
        logger.debug("Capture command: %s", " ".join(command))

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError as exc:
            raise CaptureError(
                f"'{self.executable}' command not found. {self.install_hint}"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise CaptureError(
                f"{self.executable} did not finish within {timeout:g}s"
            ) from exc
        except OSError as exc:
            raise CaptureError(f"Could not run {self.executable}: {exc}") from exc

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise CaptureError(
                f"{self.executable} exited with status {result.returncode}: {detail}"
            )
        return destination


class FswebcamDriver(CameraDriver):
    """
    Linux driver built on fswebcam.

    Covers desktop Linux and low-power boards such as the Raspberry Pi, whose
    sensors deliver dark frames right after power-up: the first frames are
    skipped and a short delay is applied before the kept frame.
    """

    executable = "fswebcam"
    install_hint = "Install it with: sudo apt-get install fswebcam"
    raw_extension = ".jpg"

    max_video_nodes = 10
    node_pattern = "/dev/video{}"

    def probe_devices(self) -> List[str]:
        return [
            str(index)
            for index in range(self.max_video_nodes)
            if os.path.exists(self.node_pattern.format(index))
        ]

    def probe_names(self) -> List[str]:
        return [f"USB Camera (video{index})" for index in self.probe_devices()]

    def device_path(self, device_id: str) -> str:
        """Translate an index handle into its /dev/videoN node."""
        if device_id.startswith("/dev/"):
            return device_id
        return self.node_pattern.format(device_id)

    def build_command(self, device_id: str, destination: str) -> List[str]:
        config = self._config
        return [
            self.executable,
            "-q",
            "-d", self.device_path(device_id),
            "-r", f"{config.capture_width}x{config.capture_height}",
            "--jpeg", str(config.capture_quality),
            "-D", str(config.warmup_delay_seconds),
            "-S", str(config.warmup_skip_frames),
            "--no-banner",
            "--set", f"brightness={config.brightness}%",
            "--set", f"contrast={config.contrast}%",
            "--set", f"gamma={config.gamma}%",
            destination,
        ]


class ImagesnapDriver(CameraDriver):
    """macOS driver built on imagesnap; devices are addressed by name."""

    executable = "imagesnap"
    install_hint = "Install it with: brew install imagesnap"

    def probe_devices(self) -> List[str]:
        output = _query([self.executable, "-l"])
        if not output:
            return []
        # Lines look like "=> FaceTime HD Camera"
        return [
            line.strip()[2:].strip()
            for line in output.splitlines()
            if line.strip().startswith("=>")
        ]

    def probe_names(self) -> List[str]:
        # imagesnap already addresses devices by their friendly name
        return self.probe_devices()

    def build_command(self, device_id: str, destination: str) -> List[str]:
        command = [self.executable, "-q"]
        if device_id != DEFAULT_DEVICE_ID:
            command += ["-d", device_id]
        command += ["-w", str(self._config.warmup_delay_seconds), destination]
        return command


class CommandCamDriver(CameraDriver):
    """Windows driver built on CommandCam; output is always BMP."""

    executable = "CommandCam"
    install_hint = "Download CommandCam.exe and place it on your PATH."

    def probe_devices(self) -> List[str]:
        output = _query([self.executable, "/devlist"])
        if not output:
            return []
        count = sum(
            1 for line in output.splitlines()
            if line.strip().lower().startswith("device name:")
        )
        return [str(number) for number in range(1, count + 1)]

    def probe_names(self) -> List[str]:
        output = _query([
            "powershell",
            "-NoProfile",
            "-Command",
            "Get-PnpDevice -Class Camera -Status OK | "
            "Select-Object -ExpandProperty FriendlyName",
        ])
        if not output:
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]

    def build_command(self, device_id: str, destination: str) -> List[str]:
        command = [self.executable, "/filename", destination, "/delay", "0"]
        if device_id != DEFAULT_DEVICE_ID:
            command += ["/devnum", device_id]
        return command


def get_driver(config: Config, platform: Optional[str] = None) -> CameraDriver:
    """
    Select the capture driver for the running operating system.

    Args:
        config:   The Config instance handed to the driver.
        platform: Platform tag (defaults to ``sys.platform``).

    Raises:
        DeviceError: If no driver exists for the platform.
    """
    platform = platform or sys.platform
    if platform.startswith("linux"):
        return FswebcamDriver(config)
    if platform == "darwin":
        return ImagesnapDriver(config)
    if platform in ("win32", "cygwin"):
        return CommandCamDriver(config)
    raise DeviceError(f"No camera driver available for platform '{platform}'")
