#!/usr/bin/env python3
"""
GrubInstall: builds (and optionally runs) grub2-install / shim-install.

commands() is pure: it returns the argv lists so every conditional can
be checked without touching a disk.

EFI has two boot paths. Normally the firmware boot list, kept in NVRAM
and exposed as efivars, names the loader. When nothing in that list
boots, the firmware falls back to the removable media path
(/efi/boot/boot*.efi). Boards without working NVRAM (e.g. U-Boot EFI)
expose no EFI variables at all, so there grub is installed to the
removable location.
"""
import logging
from typing import Callable, List, Optional, Sequence

from .Errors import UnsupportedPlatformError
from .WiredDefaults import WiredDefaults

log = logging.getLogger(__name__)

GRUB_CFG = '/boot/grub2/grub.cfg'


class GrubInstall:
    """ Installer command line for one architecture/firmware combination """

    def __init__(self, arch: str, efi: bool = False, efivars_present: bool = True,
                 install_cmd: str = '/usr/sbin/grub2-install',
                 shim_cmd: str = '/usr/sbin/shim-install',
                 grub_cfg: str = GRUB_CFG):
        self.arch = arch
        self.efi = efi
        self.efivars_present = efivars_present
        self.install_cmd = install_cmd
        self.shim_cmd = shim_cmd
        self.grub_cfg = grub_cfg
        self._target: Optional[str] = None

    @property
    def target(self) -> str:
        """ --target value; UnsupportedPlatformError when there is none """
        if self._target is None:
            wired = WiredDefaults()
            try:
                target = wired.install_target(self.arch, self.efi)
            except KeyError as exc:
                raise UnsupportedPlatformError(f"unsupported architecture '{self.arch}'") from exc
            if target is None:
                mode = 'EFI' if self.efi else 'non-EFI boot'
                raise UnsupportedPlatformError(f'{mode} on {self.arch} not supported')
            self._target = target
        return self._target

    def base_command(self, secure_boot: bool = False, trusted_boot: bool = False) -> List[str]:
        """ argv without the device """
        if secure_boot and not self.efi:
            raise UnsupportedPlatformError('cannot have secure boot without efi')
        if trusted_boot and self.efi:
            raise UnsupportedPlatformError('cannot have trusted boot with efi')

        if secure_boot:
            cmd = [self.shim_cmd, f'--config-file={self.grub_cfg}']
        else:
            cmd = [self.install_cmd, f'--target={self.target}']
            # skip-fs-probe avoids failing to embed stage1 into an extended partition
            cmd += ['--force', '--skip-fs-probe']
            if trusted_boot:
                cmd.append(f'--directory=/usr/lib/trustedgrub2/{self.target}')

        if self.efi and not self.efivars_present:
            cmd += ['--no-nvram', '--removable']
        return cmd

    def commands(self, devices: Optional[Sequence[str]] = None, secure_boot: bool = False,
                 trusted_boot: bool = False) -> List[List[str]]:
        """
        One argv per device. Without devices, s390 and EFI still install
        (they need no device); elsewhere no device means the user chose
        not to install a bootloader, so nothing runs.
        """
        cmd = self.base_command(secure_boot, trusted_boot)
        if devices:
            return [cmd + [dev] for dev in devices]
        if self.arch.startswith('s390') or self.efi:
            return [cmd]
        return []

    def execute(self, runner: Callable, devices: Optional[Sequence[str]] = None,
                secure_boot: bool = False, trusted_boot: bool = False) -> List[List[str]]:
        """ Run every command through runner; returns what was run """
        argvs = self.commands(devices, secure_boot, trusted_boot)
        if not argvs:
            log.info('no boot device given, bootloader installation skipped')
        for argv in argvs:
            runner(argv)
        return argvs
