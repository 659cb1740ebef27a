# =============================================================================
# Huely - Device Enumeration
# =============================================================================
# Turns the raw handles and friendly names reported by a platform driver into
# DeviceDescriptor values. Enumeration never comes back empty: when the
# platform reports nothing, a synthetic default device is offered instead.
# =============================================================================

import logging
from typing import Callable, List, Sequence

from huely.drivers import DEFAULT_DEVICE_ID, CameraDriver
from huely.errors import DeviceError
from huely.schemas import DeviceDescriptor

logger = logging.getLogger(__name__)

DEFAULT_DEVICE = DeviceDescriptor(id=DEFAULT_DEVICE_ID, display_name="Default Camera")


def list_devices(driver: CameraDriver) -> List[DeviceDescriptor]:
    """
    Enumerate attached cameras through ``driver``.

    Friendly names are matched to handles by position. A handle without a
    name gets the placeholder "Camera N".

    Returns:
        A non-empty list of DeviceDescriptor.
    """
    device_ids = driver.probe_devices()
    if not device_ids:
        logger.info("No cameras reported by %s; using default device", driver.executable)
        return [DEFAULT_DEVICE]

    names = driver.probe_names()
    if len(names) < len(device_ids):
        logger.debug(
            "Resolved %d name(s) for %d device(s)", len(names), len(device_ids)
        )

    devices = []
    for index, device_id in enumerate(device_ids):
        name = names[index].strip() if index < len(names) else ""
        devices.append(
            DeviceDescriptor(id=device_id, display_name=name or f"Camera {index + 1}")
        )

    logger.debug("Enumerated devices: %s", devices)
    return devices


def select_device(
    devices: Sequence[DeviceDescriptor],
    chooser: Callable[[Sequence[DeviceDescriptor]], str],
) -> str:
    """
    Pick the device to capture from.

    A single candidate is selected without calling ``chooser``.

    Args:
        devices: Output of list_devices().
        chooser: Callback that asks the user and returns the chosen id.

    Returns:
        The selected device id.

    Raises:
        DeviceError: If ``devices`` is empty.
    """
    if not devices:
        raise DeviceError("No webcams available")
    if len(devices) == 1:
        return devices[0].id
    return chooser(devices)
