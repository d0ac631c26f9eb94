#!/usr/bin/env python3
"""
BootConfig: the whole GRUB2 configuration of a system.

  - grub_default: /etc/default/grub (GrubDefault)
  - password: superuser password script (GrubPassword)
  - sections: boot menu entries and saved default (Sections)
  - pmbr_action: 'nothing' | 'add' | 'remove' protective MBR boot flag
  - trusted_boot / secure_boot: None until known
  - console: SerialConsole in use, None if none

propose() and merge() are delegated to ProposalEngine / MergeEngine;
both only touch this object. read() and write() are the I/O steps.
"""
# pylint: disable=too-many-instance-attributes
import logging
import re
from typing import Callable, List, Optional

from .BackupMgr import BackupMgr
from .CpuMitigations import CpuMitigations
from .Errors import InvalidSerialConsoleArgumentsError
from .GrubCfg import GrubCfg, Sections
from .GrubDefault import GrubDefault
from .GrubPassword import GrubPassword
from .KernelParams import Matcher, ReplacePlacer
from .Language import LANGUAGE_FILE, systemwide_locale
from .SerialConsole import SerialConsole
from .Settings import Settings
from .ShellCmd import run_cmd
from .StorageInfo import StorageInfo
from .SysInfo import SysInfo
from .UdevMapping import UdevMapping

log = logging.getLogger(__name__)

PMBR_NOTHING = 'nothing'
PMBR_ADD = 'add'
PMBR_REMOVE = 'remove'
PMBR_ACTIONS = (PMBR_NOTHING, PMBR_ADD, PMBR_REMOVE)

DEFAULT_PATHS = {
    'etc_grub': GrubDefault.std_location,
    'grub_cfg': '/boot/grub2/grub.cfg',
    'grubenv': '/boot/grub2/grubenv',
    'password_script': GrubPassword.std_location,
    'sysconfig_language': LANGUAGE_FILE,
}
DEFAULT_COMMANDS = {
    'mkconfig': '/usr/sbin/grub2-mkconfig',
    'set_default': '/usr/sbin/grub2-set-default',
    'parted': '/usr/sbin/parted',
}


def serial_console_matcher() -> Matcher:
    """ console= tokens that name a serial port """
    return Matcher(key='console', value_matcher=re.compile(r'tty(S|AMA)'))


class BootConfig:
    """ GRUB2 configuration plus the collaborators needed to read/write it """

    def __init__(self, settings: Optional[Settings] = None, sysinfo: Optional[SysInfo] = None,
                 storage: Optional[StorageInfo] = None, udev: Optional[UdevMapping] = None,
                 runner: Optional[Callable] = None):
        self.settings = settings
        self._sysinfo = sysinfo
        self._storage = storage
        self._udev = udev
        self.runner = runner or run_cmd

        self.grub_default = GrubDefault(self.path('etc_grub'))
        self.password = GrubPassword(self.path('password_script'))
        self.sections = Sections(runner=self.runner, set_default_cmd=self.command('set_default'))
        self.pmbr_action = PMBR_NOTHING
        self.trusted_boot: Optional[bool] = None
        self.secure_boot: Optional[bool] = None
        self.console: Optional[SerialConsole] = None
        self._explicit_cpu_mitigations = False

    # --- collaborators ---
    @property
    def sysinfo(self) -> SysInfo:
        """ Platform facts (created on first use) """
        if self._sysinfo is None:
            self._sysinfo = SysInfo(settings=self.settings)
        return self._sysinfo

    @property
    def storage(self) -> StorageInfo:
        """ Block device facts (created on first use) """
        if self._storage is None:
            self._storage = StorageInfo()
        return self._storage

    @property
    def udev(self) -> UdevMapping:
        """ Device name resolver (created on first use) """
        if self._udev is None:
            mountby = self.settings.mountby if self.settings else None
            self._udev = UdevMapping(mountby=mountby)
        return self._udev

    def path(self, name: str) -> str:
        """ Configured path of a distro file """
        if self.settings is not None:
            return self.settings.path(name)
        return DEFAULT_PATHS[name]

    def command(self, name: str) -> str:
        """ Configured executable """
        if self.settings is not None:
            return self.settings.command(name)
        return DEFAULT_COMMANDS[name]

    # --- cpu mitigations ---
    @property
    def cpu_mitigations(self) -> CpuMitigations:
        """ Setting derived from the kernel command line """
        return CpuMitigations.from_kernel_params(self.grub_default.kernel_params)

    @cpu_mitigations.setter
    def cpu_mitigations(self, value):
        if isinstance(value, str):
            value = CpuMitigations(value)
        log.info('setting mitigations to %s', value)
        self._explicit_cpu_mitigations = True
        value.modify_kernel_params(self.grub_default.kernel_params)

    @property
    def explicit_cpu_mitigations(self) -> Optional[CpuMitigations]:
        """ The setting if it was set on purpose, None if merely inherited """
        return self.cpu_mitigations if self._explicit_cpu_mitigations else None

    # --- serial console ---
    def enable_serial_console(self, console_arg_string: str):
        """
        Use a serial console, e.g. 'serial --unit=0 --speed=115200 --parity=no'.
        Raises InvalidSerialConsoleArgumentsError when it cannot be parsed.
        """
        console = SerialConsole.load_from_console_args(
            console_arg_string, aarch64=self.sysinfo.is_aarch64())
        if console is None:
            raise InvalidSerialConsoleArgumentsError(console_arg_string)
        self.console = console
        self.grub_default.serial_console = console.console_args()
        self.grub_default.kernel_params.add_parameter(
            'console', console.kernel_args(), ReplacePlacer(serial_console_matcher()))

    def disable_serial_console(self):
        """ Back to the graphics/text console """
        self.console = None
        self.grub_default.kernel_params.remove_parameter(serial_console_matcher())
        self.grub_default.serial_console = ''

    def serial_console(self) -> bool:
        """ A serial console is configured """
        return self.console is not None

    # --- pmbr ---
    def pmbr_commands(self, *devices: str) -> List[List[str]]:
        """ parted invocations for the pmbr action """
        if self.pmbr_action == PMBR_NOTHING:
            return []
        if self.pmbr_action == PMBR_ADD:
            flag = 'on'
        elif self.pmbr_action == PMBR_REMOVE:
            flag = 'off'
        else:
            raise ValueError(f'invalid pmbr action {self.pmbr_action!r}')
        return [[self.command('parted'), '-s', dev, 'disk_set', 'pmbr_boot', flag]
                for dev in devices]

    def pmbr_setup(self, *devices: str):
        """ Set or clear the pmbr_boot flag on the boot disks """
        for argv in self.pmbr_commands(*devices):
            self.runner(argv)

    # --- proposal / merge ---
    def propose(self):
        """ Fill undecided settings with defaults for this platform """
        from .ProposalEngine import ProposalEngine  # pylint: disable=import-outside-toplevel
        ProposalEngine(self, self.sysinfo, self.storage, self.udev).propose()

    def merge(self, other: 'BootConfig'):
        """ Apply other (e.g. an autoinstallation profile) on top of this """
        from .MergeEngine import MergeEngine  # pylint: disable=import-outside-toplevel
        MergeEngine(self).merge(other)

    # --- I/O ---
    def read_sections(self):
        """ Menu entries from grub.cfg; a missing grub.cfg means no entries yet """
        path = self.path('grub_cfg')
        try:
            grub_cfg = GrubCfg.from_file(path)
        except FileNotFoundError:
            log.info('%s is missing. Defaulting to empty one.', path)
            grub_cfg = GrubCfg()
        self.sections = Sections(grub_cfg, grubenv_path=self.path('grubenv'),
                                 set_default_cmd=self.command('set_default'),
                                 runner=self.runner)
        log.info('grub sections: %s', self.sections.all)

    def read(self):
        """ Load the configuration of the running system """
        self.grub_default = GrubDefault(self.path('etc_grub')).load()
        self.read_sections()
        self.password = GrubPassword(self.path('password_script')).read()
        self.console = SerialConsole.load_from_kernel_args(
            self.grub_default.kernel_params, aarch64=self.sysinfo.is_aarch64())
        self.trusted_boot = self.sysinfo.trusted_boot_active()
        self.secure_boot = self.sysinfo.secure_boot_active()
        return self

    def mkconfig_command(self) -> List[str]:
        """ Boot menu regeneration argv """
        return [self.command('mkconfig'), '-o', self.path('grub_cfg')]

    def write(self, backup: bool = True):
        """ Save everything and regenerate the boot menu """
        if backup and self.settings is not None:
            BackupMgr(self.grub_default.file_path, self.settings.backup_dir).create_backup('pre-save')
        log.info('writing %s %r', self.grub_default.file_path, self.grub_default)
        self.grub_default.save()
        self.sections.write()
        self.password.write()
        self.runner(self.mkconfig_command(),
                    env=systemwide_locale(self.path('sysconfig_language')))
        self.read_sections()
