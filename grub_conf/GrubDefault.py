#!/usr/bin/env python3
"""
GrubDefault:
  The in-memory model of /etc/default/grub.

  On READING:
    - every uncommented KEY=VALUE line is parsed (unquoted, trailing
      unquoted comments clipped); when a key repeats, the last line wins
    - managed keys become typed attributes, every other key lands in the
      ordered generic map
  STATE:
    - a scalar attribute left as None means "not decided yet" and is
      distinct from '' (explicitly empty)
    - booleans are BoolSetting objects with three states
      (undefined / enabled / disabled)
  On WRITING:
    - lines of unchanged keys are written back verbatim, so a document
      that was loaded and not modified serializes byte for byte
    - a changed key rewrites its (last) line in place
    - a key that became unset has its line commented out
    - a newly set key replaces its last commented-out line if there is
      one, otherwise it is appended at the end of the file
"""
# pylint: disable=too-many-instance-attributes,too-many-branches
import logging
import re
from typing import Dict, List, Optional

from .Errors import BrokenConfigurationError, TerminalError
from .KernelParams import KernelParams

log = logging.getLogger(__name__)

LINE_RE = re.compile(r"\s*(#)?\s*([A-Za-z_][A-Za-z0-9_]*)\s*=(.*)$")

TERMINALS = ('console', 'serial', 'gfxterm')


class BoolSetting:
    """
    Tri-state boolean bound to one sysconfig key.

    inverted: the key expresses the opposite (GRUB_DISABLE_*).
    true_text/false_text: how the key spells "yes"/"no" in the file.
    """
    TRUTHY = ('true', 'yes', 'y', '1')

    def __init__(self, true_text: str = 'true', false_text: str = 'false', inverted: bool = False):
        self.true_text = true_text
        self.false_text = false_text
        self.inverted = inverted
        self._value: Optional[bool] = None

    @property
    def value(self) -> Optional[bool]:
        """ None when undefined, else whether the feature is enabled """
        return self._value

    @value.setter
    def value(self, value: Optional[bool]):
        self._value = None if value is None else bool(value)

    def defined(self) -> bool:
        """ True once the setting was read or explicitly set """
        return self._value is not None

    def enabled(self) -> bool:
        """ True only when defined and on """
        return self._value is True

    def disabled(self) -> bool:
        """ True only when defined and off """
        return self._value is False

    def enable(self):
        """ Switch the feature on """
        self._value = True

    def disable(self):
        """ Switch the feature off """
        self._value = False

    def from_text(self, text: Optional[str]):
        """ Set from the raw file value """
        if text is None:
            self._value = None
            return
        flag = text.strip().lower() in self.TRUTHY
        self._value = (not flag) if self.inverted else flag

    def to_text(self) -> Optional[str]:
        """ Raw file value or None when undefined """
        if self._value is None:
            return None
        flag = (not self._value) if self.inverted else self._value
        return self.true_text if flag else self.false_text

    def __repr__(self):
        return f'BoolSetting({self._value!r})'


def cleanse(value_part: str) -> str:
    """
    Extracts the parameter value from a line, correctly clipping any unquoted comments.

    Example: 'GRUB_TIMEOUT=5 # 10 seconds default' -> '5'
    Example: 'GRUB_CMDLINE="has #hash" #comment' -> '"has #hash"'
    """
    value_part = value_part.strip()
    in_single_quotes = False
    in_double_quotes = False
    comment_index = len(value_part)

    for i, char in enumerate(value_part):
        if char == "'" and not in_double_quotes:
            in_single_quotes = not in_single_quotes
        elif char == '"' and not in_single_quotes:
            in_double_quotes = not in_double_quotes
        elif char == '#' and not in_single_quotes and not in_double_quotes:
            comment_index = i
            break

    return value_part[:comment_index].rstrip()


def unquote(value: str) -> str:
    """ Strip one level of matching shell quotes """
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        inner = value[1:-1]
        if value[0] == '"':
            inner = inner.replace('\\"', '"')
        return inner
    return value


def quote(value: str) -> str:
    """ Quote a value for a sysconfig style assignment """
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    return '"' + value.replace('"', '\\"') + '"'


class GrubDefault:
    """
    The /etc/default/grub configuration document.
    """
    std_location = '/etc/default/grub'

    KERNEL_KEYS = {
        'kernel_params': 'GRUB_CMDLINE_LINUX_DEFAULT',
        'xen_hypervisor_params': 'GRUB_CMDLINE_XEN_DEFAULT',
        'xen_kernel_params': 'GRUB_CMDLINE_LINUX_XEN_REPLACE_DEFAULT',
    }
    STRING_KEYS = {
        'timeout': 'GRUB_TIMEOUT',
        'hidden_timeout': 'GRUB_HIDDEN_TIMEOUT',
        'distributor': 'GRUB_DISTRIBUTOR',
        'gfxmode': 'GRUB_GFXMODE',
        'theme': 'GRUB_THEME',
        'default': 'GRUB_DEFAULT',
        'serial_console': 'GRUB_SERIAL_COMMAND',
    }
    BOOL_KEYS = {
        'os_prober': 'GRUB_DISABLE_OS_PROBER',
        'cryptodisk': 'GRUB_ENABLE_CRYPTODISK',
        'recovery_entry': 'GRUB_DISABLE_RECOVERY',
    }
    TERMINAL_KEY = 'GRUB_TERMINAL'

    def __init__(self, file_path: Optional[str] = None):
        self.file_path = file_path if file_path else GrubDefault.std_location
        self.kernel_params = KernelParams()
        self.xen_hypervisor_params = KernelParams()
        self.xen_kernel_params = KernelParams()
        self.timeout: Optional[str] = None
        self.hidden_timeout: Optional[str] = None
        self.distributor: Optional[str] = None
        self.gfxmode: Optional[str] = None
        self.theme: Optional[str] = None
        self.default: Optional[str] = None
        self.serial_console: Optional[str] = None
        self.os_prober = BoolSetting(inverted=True)
        self.cryptodisk = BoolSetting(true_text='y', false_text='n')
        self.recovery_entry = BoolSetting(inverted=True)
        self._terminal: Optional[str] = None
        self.generic: Dict[str, Optional[str]] = {}

        self.lines: List[str] = []
        self.param_of: List[Optional[str]] = []  # key owning each line (last uncommented)
        self.comment_of: Dict[str, int] = {}      # key -> last commented-out line
        self.loaded: Dict[str, str] = {}          # raw values as read

    # --- terminal ---
    @property
    def terminal(self) -> Optional[List[str]]:
        """
        Terminal types as a list (e.g. ['serial', 'console']) or None.
        Raises TerminalError on a value it does not understand.
        """
        if self._terminal is None:
            return None
        items = self._terminal.split()
        unknown = [t for t in items if t not in TERMINALS]
        if unknown or not items:
            raise TerminalError(f'unknown GRUB_TERMINAL value {self._terminal!r}')
        return items

    @terminal.setter
    def terminal(self, value):
        if value is None:
            self._terminal = None
        elif isinstance(value, str):
            self._terminal = value
        else:
            self._terminal = ' '.join(str(v) for v in value)

    @property
    def terminal_text(self) -> Optional[str]:
        """ GRUB_TERMINAL exactly as stored, without interpretation """
        return self._terminal

    # --- generic keys ---
    def generic_get(self, key: str) -> Optional[str]:
        """ Value of an unmanaged key or None """
        return self.generic.get(key)

    def generic_set(self, key: str, value: Optional[str]):
        """ Set (or unset with None) an unmanaged key """
        self.generic[key] = value

    def generic_keys(self) -> List[str]:
        """ Unmanaged keys that currently hold a value """
        return [k for k, v in self.generic.items() if v is not None]

    # --- reading ---
    @classmethod
    def from_text(cls, text: str, file_path: Optional[str] = None) -> 'GrubDefault':
        """ Build a document from the content of a grub defaults file """
        doc = cls(file_path)
        doc.parse(text)
        return doc

    def parse(self, text: str):
        """ Populate from the file content """
        self.lines = text.splitlines(keepends=True)
        self.param_of = [None] * len(self.lines)
        line_of: Dict[str, int] = {}

        for i, line in enumerate(self.lines):
            mat = LINE_RE.match(line.rstrip('\n'))
            if not mat:
                continue
            key = mat.group(2)
            if mat.group(1):
                self.comment_of[key] = i
                continue
            if key in line_of:
                self.param_of[line_of[key]] = None  # superseded by this line
            line_of[key] = i
            self.param_of[i] = key
            self.loaded[key] = unquote(cleanse(mat.group(3)))

        for key, raw in self.loaded.items():
            self._assign(key, raw)

    def _assign(self, key: str, raw: str):
        for attr, akey in self.KERNEL_KEYS.items():
            if akey == key:
                getattr(self, attr).replace(raw)
                return
        for attr, akey in self.STRING_KEYS.items():
            if akey == key:
                setattr(self, attr, raw)
                return
        for attr, akey in self.BOOL_KEYS.items():
            if akey == key:
                getattr(self, attr).from_text(raw)
                return
        if key == self.TERMINAL_KEY:
            self._terminal = raw
            return
        self.generic[key] = raw

    def load(self, file_path: Optional[str] = None):
        """ Read the file; a missing/unreadable file is a broken configuration """
        path = file_path or self.file_path
        try:
            with open(path, 'r', encoding='utf-8') as fh:
                text = fh.read()
        except FileNotFoundError as exc:
            raise BrokenConfigurationError(f'File {path} missing on system') from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise BrokenConfigurationError(f'Cannot read {path}: {exc}') from exc
        self.file_path = path
        self.parse(text)
        return self

    # --- writing ---
    def values(self) -> Dict[str, Optional[str]]:
        """ Current raw value of every key this document knows about """
        vals: Dict[str, Optional[str]] = {}
        for attr, key in self.KERNEL_KEYS.items():
            params = getattr(self, attr)
            vals[key] = params.serialize() if (not params.empty() or key in self.loaded) else None
        for attr, key in self.STRING_KEYS.items():
            vals[key] = getattr(self, attr)
        for attr, key in self.BOOL_KEYS.items():
            vals[key] = getattr(self, attr).to_text()
        vals[self.TERMINAL_KEY] = self._terminal
        for key, value in self.generic.items():
            vals[key] = value
        return vals

    def _unchanged(self, key: str, new: Optional[str]) -> bool:
        old = self.loaded.get(key)
        if new is None or old is None:
            return new == old
        if key in self.KERNEL_KEYS.values():
            return new.split() == old.split()
        return new == old

    def to_text(self) -> str:
        """ Serialize, preserving everything not touched since reading """
        vals = self.values()
        out = list(self.lines)
        written = set()

        for i, key in enumerate(self.param_of):
            if key is None:
                continue
            written.add(key)
            new = vals.get(key)
            if self._unchanged(key, new):
                continue
            if new is None:
                out[i] = '#' + self.lines[i]
            else:
                out[i] = f'{key}={quote(new)}\n'

        appended = []
        for key, new in vals.items():
            if new is None or key in written:
                continue
            if key in self.comment_of:
                out[self.comment_of[key]] = f'{key}={quote(new)}\n'
            else:
                appended.append(f'{key}={quote(new)}\n')

        if appended and out and not out[-1].endswith('\n'):
            out[-1] += '\n'
        return ''.join(out + appended)

    def save(self, file_path: Optional[str] = None):
        """ Write the file """
        path = file_path or self.file_path
        with open(path, 'w', encoding='utf-8') as fh:
            fh.write(self.to_text())
        log.info('wrote %s', path)

    def to_dict(self) -> Dict[str, Optional[str]]:
        """ Keys with values, for display and comparison """
        return {k: v for k, v in self.values().items() if v is not None}

    def __repr__(self):
        return f'GrubDefault({self.to_dict()!r})'


def read_sysconfig(path: str) -> Dict[str, str]:
    """
    Plain KEY=VALUE reader for sysconfig style files
    (/etc/sysconfig/bootloader, /etc/sysconfig/language).
    Raises FileNotFoundError when the file is missing.
    """
    with open(path, 'r', encoding='utf-8') as fh:
        return dict(GrubDefault.from_text(fh.read(), path).loaded)
