"""
This module defines the banner printed when the lsql shell starts.

It uses `colorama` for cross-platform colored output.
"""

import sys
from typing import TextIO

from colorama import Fore, Style, just_fix_windows_console

from . import __version__

just_fix_windows_console()

BANNER = r"""
    __   _____  ____    __
   / /  / ___/ / __ \  / /
  / /   \__ \ / / / / / /
 / /___ ___/ // /_/ / / /___
/_____//____/ \___\_\/_____/   v{version}
"""

SHELL_WELCOME = """Connected to [{host}]
Use "!" to set output options [!keys|!keys-only|!stats|!meta|!pretty|!live-stream|!options]
End a statement with ";" to run it. Ctrl+D exits.
"""

_COLORS = {
    "cyan": Fore.CYAN,
    "green": Fore.GREEN,
    "yellow": Fore.YELLOW,
    "blue": Fore.BLUE,
    "magenta": Fore.MAGENTA,
    "red": Fore.RED,
    "white": Fore.WHITE,
}


def get_colored_banner(banner_text: str, color: str | None = None) -> str:
    """
    Applies color to the banner text.

    Args:
        banner_text: The text of the banner.
        color: The desired color name (e.g., 'cyan', 'green'); None leaves it plain.
    """
    if not color:
        return banner_text
    fore_color = _COLORS.get(color.lower(), Fore.CYAN)
    return f"{fore_color}{banner_text}{Style.RESET_ALL}"


def print_shell_banner(host: str, color: str | None = "cyan", file: TextIO | None = None) -> None:
    """
    Prints the banner and welcome message for the interactive shell to stderr.

    Args:
        host: The host the shell is connected to.
        color: The color to apply to the banner.
        file: Destination stream, stderr by default.
    """
    out = file or sys.stderr
    print(get_colored_banner(BANNER.format(version=__version__), color), file=out)
    print(get_colored_banner(SHELL_WELCOME.format(host=host), "green" if color else None), file=out)
