# =============================================================================
# Huely - Terminal UI
# =============================================================================
# Thin presentation layer: banner, controls, device menu, API key prompt and
# rendering of analysis results and errors. Input is line based.
# =============================================================================

import getpass
import os
from typing import Callable, Optional, Sequence

from huely.schemas import DeviceDescriptor

RULE = "-" * 60

# Command names returned by read_command()
CAPTURE = "capture"
SWITCH = "switch"
CONFIGURE = "config"
CLEAR = "clear"
QUIT = "quit"

_KEYMAP = {
    "": CAPTURE,
    " ": CAPTURE,
    "w": SWITCH,
    "k": CONFIGURE,
    "c": CLEAR,
    "q": QUIT,
}


class TerminalUI:
    """
    Console front end for a Huely session.

    Args:
        input_func:  Replacement for ``input`` (tests).
        secret_func: Replacement for ``getpass.getpass`` (tests).
    """

    def __init__(
        self,
        input_func: Optional[Callable[[str], str]] = None,
        secret_func: Optional[Callable[[str], str]] = None,
    ):
        self._input = input_func or input
        self._secret = secret_func or getpass.getpass

    def show_welcome(self) -> None:
        print("\n" + "=" * 60)
        print("  HUELY - Webcam AI")
        print("=" * 60)
        print("  Capture webcam snapshots and analyze them with a vision model\n")

    def show_instructions(self) -> None:
        print("Controls:")
        print("  Enter   capture and analyze")
        print("  w       switch webcam")
        print("  k       configure API key")
        print("  c       clear screen")
        print("  q       quit")
        print(RULE + "\n")

    def choose_device(self, devices: Sequence[DeviceDescriptor]) -> str:
        """Numbered menu; asks again until a valid entry is picked."""
        print("Select a webcam:")
        for number, device in enumerate(devices, start=1):
            print(f"  {number}) {device.display_name}")
        while True:
            answer = self._input("Camera number: ").strip()
            if answer.isdigit() and 1 <= int(answer) <= len(devices):
                return devices[int(answer) - 1].id
            print(f"Please enter a number between 1 and {len(devices)}.")

    def prompt_api_key(self) -> str:
        """Ask for the API key until a plausible one is entered."""
        while True:
            api_key = self._secret("Enter your OpenAI API key: ").strip()
            error = validate_api_key(api_key)
            if error is None:
                return api_key
            self.show_error(error)

    def read_command(self) -> Optional[str]:
        """
        Wait for the next command.

        Returns:
            One of the command names, or None for an unknown key.
            EOF and Ctrl+C are reported as QUIT.
        """
        try:
            raw = self._input("> ")
        except (EOFError, KeyboardInterrupt):
            return QUIT
        key = raw if raw == " " else raw.strip().lower()
        return _KEYMAP.get(key)

    def show_status(self, message: str) -> None:
        print(message)

    def show_response(self, response: str) -> None:
        print("\nAI Analysis:")
        print(RULE)
        for line in response.splitlines():
            print(line)
        print(RULE + "\n")

    def show_error(self, message: str) -> None:
        print(f"\nError: {message}\n")

    def show_success(self, message: str) -> None:
        print(f"\n{message}\n")

    def clear_screen(self) -> None:
        os.system("cls" if os.name == "nt" else "clear")
        self.show_welcome()
        self.show_instructions()


def validate_api_key(api_key: str) -> Optional[str]:
    """Return an error message for an implausible key, else None."""
    if not api_key:
        return "API key cannot be empty"
    if not api_key.startswith("sk-"):
        return "Invalid API key format (should start with sk-)"
    return None
