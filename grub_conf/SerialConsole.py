#!/usr/bin/env python3
"""
SerialConsole: one serial port used both by GRUB (GRUB_SERIAL_COMMAND)
and by the kernel (console=ttyS0,115200n8).

It is never stored on its own; it is derived either from GRUB's
'serial --unit=0 --speed=115200 --parity=no' string or from the
console= tokens of a kernel command line.

Kernel option form (from kernel-parameters.txt):
    ttyS<n>[,bbbbpnf]  -- baud rate, parity (n/o/e), bits, flow
"""
import re
from typing import Optional

from .KernelParams import KernelParams

PARITY_MAP = {'n': 'no', 'o': 'odd', 'e': 'even'}
SPEED_DEFAULT = '9600'
PARITY_DEFAULT = 'no'

KERNEL_CONSOLE_RE = re.compile(r'^(ttyS|ttyAMA)(\d+)(?:,(\d*)([noe]?)(\d?))?')


class SerialConsole:
    """ Serial console settings shared by GRUB and the kernel """

    def __init__(self, unit, speed=SPEED_DEFAULT, parity=PARITY_DEFAULT, word='',
                 aarch64: bool = False):
        self.unit = str(unit)
        self.speed = str(speed) if speed else SPEED_DEFAULT
        self.parity = parity or PARITY_DEFAULT
        self.word = str(word or '')
        self.aarch64 = aarch64

    @classmethod
    def load_from_console_args(cls, console_args: str, aarch64: bool = False) -> Optional['SerialConsole']:
        """
        Parse GRUB's serial command, e.g.
        'serial --unit=1 --speed=115200 --parity=even --word=8'.
        Returns None when there is no --unit.
        """
        if not console_args:
            return None
        unit = re.search(r'--unit=(\d+)', console_args)
        if not unit:
            return None
        speed = re.search(r'--speed=(\d+)', console_args)
        parity = re.search(r'--parity=(\S+)', console_args)
        word = re.search(r'--word=(\d+)', console_args)
        return cls(unit.group(1),
                   speed.group(1) if speed else SPEED_DEFAULT,
                   parity.group(1) if parity else PARITY_DEFAULT,
                   word.group(1) if word else '',
                   aarch64=aarch64)

    @classmethod
    def load_from_kernel_args(cls, kernel_params: KernelParams,
                              aarch64: bool = False) -> Optional['SerialConsole']:
        """
        Find the first console= value naming a serial port (ttyS or ttyAMA).
        Returns None when there is none.
        """
        for value in kernel_params.values('console'):
            if not isinstance(value, str):
                continue
            mat = KERNEL_CONSOLE_RE.match(value)
            if not mat:
                continue
            _, unit, speed, parity, word = mat.groups()
            return cls(unit, speed or SPEED_DEFAULT,
                       PARITY_MAP.get(parity or '', PARITY_DEFAULT),
                       word or '', aarch64=aarch64)
        return None

    @property
    def device(self) -> str:
        """ Kernel name of the port, e.g. ttyS0 """
        prefix = 'ttyAMA' if self.aarch64 else 'ttyS'
        return f'{prefix}{self.unit}'

    def console_args(self) -> str:
        """ GRUB_SERIAL_COMMAND value """
        res = f'serial --unit={self.unit} --speed={self.speed} --parity={self.parity}'
        if self.word:
            res += f' --word={self.word}'
        return res

    def kernel_args(self) -> str:
        """ Value of the console= kernel parameter """
        return f'{self.device},{self.speed}{self.parity[0]}{self.word}'

    def xen_kernel_args(self) -> str:
        """ Kernel line used under the Xen hypervisor """
        return 'console=hvc0'

    def xen_hypervisor_args(self) -> str:
        """ Hypervisor line: Xen counts com ports from 1 """
        com = f'com{int(self.unit) + 1}'
        return f'console={com} {com}={self.speed}{self.parity[0]}{self.word}'

    def __eq__(self, other):
        if not isinstance(other, SerialConsole):
            return NotImplemented
        return (self.unit, self.speed, self.parity, self.word) == \
               (other.unit, other.speed, other.parity, other.word)

    def __repr__(self):
        return f'SerialConsole({self.console_args()!r})'
