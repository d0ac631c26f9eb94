#!/usr/bin/env python3
"""
Exceptions raised by grub_conf.

Everything derives from GrubConfError so the CLI can report any of them
with one handler; subprocess failures are NOT wrapped and surface as
subprocess.CalledProcessError.
"""


class GrubConfError(Exception):
    """Base of all grub_conf errors."""


class ParseError(GrubConfError, ValueError):
    """Kernel command line input is not a decodable string."""


class BrokenConfigurationError(GrubConfError):
    """The persisted configuration is missing or unreadable."""


class UnknownDeviceError(BrokenConfigurationError):
    """A device name cannot be resolved to an existing device."""

    def __init__(self, device: str):
        super().__init__(f"Unknown udev device '{device}'")
        self.device = device


class InvalidSerialConsoleArgumentsError(GrubConfError):
    """Serial console arguments do not match the expected grammar."""

    def __init__(self, args: str = ''):
        super().__init__(f"Invalid serial console arguments: {args!r}")
        self.args_string = args


class UnsupportedPlatformError(GrubConfError):
    """Architecture/EFI/boot-mode combination has no installer target."""


class TerminalError(GrubConfError, ValueError):
    """GRUB_TERMINAL holds a value that cannot be interpreted."""
