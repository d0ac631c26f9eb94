#!/usr/bin/env python3
"""
SysInfo: platform facts needed to propose and install a bootloader.

Everything is read relative to `root` so a test (or a chroot) can lay
out its own /sys, /dev, /proc and /etc.
"""
# pylint: disable=too-many-public-methods
import glob
import logging
import os
import platform
from typing import Optional

from .GrubDefault import read_sysconfig
from .Settings import Settings
from .WiredDefaults import WiredDefaults

log = logging.getLogger(__name__)

EFI_BOOTLOADERS = ('grub2-efi', 'grub2-bls')


class SysInfo:
    """ Facts about the running (or target) system """

    def __init__(self, root: str = '/', arch: Optional[str] = None,
                 settings: Optional[Settings] = None):
        self.root = root
        self.wired = WiredDefaults()
        self.arch = self.wired.architecture(arch or platform.machine())
        self.settings = settings

    def _path(self, path: str) -> str:
        return os.path.join(self.root, path.lstrip('/'))

    def _read(self, path: str, size: int = -1) -> Optional[str]:
        try:
            with open(self._path(path), 'r', encoding='utf-8') as fh:
                return fh.read(size)
        except OSError:
            return None

    def _sysconfig(self, key: str) -> Optional[str]:
        path = self._path('/etc/sysconfig/bootloader')
        try:
            return read_sysconfig(path).get(key)
        except FileNotFoundError:
            log.info('%s does not exist', path)
            return None

    # --- architecture ---
    def architecture(self) -> str:
        """ Normalized architecture (x86_64, i386, ppc64, s390_64, aarch64, ...) """
        return self.arch

    def family(self) -> str:
        """ Platform family of the architecture """
        return self.wired.family(self.arch)

    def is_s390(self) -> bool:
        """ s390 family """
        return self.family() == 's390'

    def is_ppc(self) -> bool:
        """ ppc family """
        return self.family() == 'ppc'

    def is_aarch64(self) -> bool:
        """ 64-bit ARM """
        return self.arch == 'aarch64'

    def is_restricted(self) -> bool:
        """ Platforms without os-prober and graphical terminal (s390, ppc) """
        return self.wired.is_restricted(self.arch)

    # --- devices / firmware ---
    def framebuffer_present(self) -> bool:
        """ At least one /dev/fb* node """
        return bool(glob.glob(self._path('/dev/fb*')))

    def efivars_present(self) -> bool:
        """ At least one EFI variable is exposed """
        return bool(glob.glob(self._path('/sys/firmware/efi/efivars/*')))

    def writable_efivars(self) -> bool:
        """ EFI variables exist and efivarfs is mounted read-write """
        if not self.efivars_present():
            return False
        mounts = self._read('/proc/mounts') or ''
        for line in mounts.splitlines():
            fields = line.split()
            if len(fields) >= 4 and fields[2] == 'efivarfs':
                return 'rw' in fields[3].split(',')
        return False

    # --- secure boot ---
    def secure_boot_active(self) -> bool:
        """ SECURE_BOOT=yes in sysconfig (s390 has its own notion) """
        if self.is_s390():
            return self.s390_secure_boot_active()
        return (self._sysconfig('SECURE_BOOT') or '').lower() == 'yes'

    def secure_boot_available(self, bootloader: str) -> bool:
        """ Can secure boot be used with this bootloader here """
        if self.efi_used(bootloader):
            return self.efi_supported()
        if bootloader == 'grub2':
            return self.s390_secure_boot_available()
        return False

    def s390_secure_boot_available(self) -> bool:
        """ The s390 firmware supports secure IPL """
        if not self.is_s390():
            return False
        return (self._read('/sys/firmware/ipl/has_secure', 1) or '') == '1'

    def s390_secure_boot_active(self) -> bool:
        """ The current IPL was a secure one """
        if not self.is_s390():
            return False
        return (self._read('/sys/firmware/ipl/secure', 1) or '') == '1'

    # --- trusted boot ---
    def trusted_boot_active(self) -> bool:
        """ TRUSTED_BOOT=yes in sysconfig """
        return (self._sysconfig('TRUSTED_BOOT') or '').lower() == 'yes'

    def trusted_boot_available(self, bootloader: str) -> bool:
        """ TPM based trusted boot possible for this bootloader """
        if self.efi_used(bootloader):
            return os.path.exists(self._path('/dev/tpm0'))
        return self.arch in self.wired['trusted_boot_architectures']

    # --- efi ---
    @staticmethod
    def efi_used(bootloader: str) -> bool:
        """ bootloader name implies EFI """
        return bootloader in EFI_BOOTLOADERS

    def efi_supported(self) -> bool:
        """ Architecture has an EFI target """
        return self.arch in self.wired['efi_architectures']

    def shim_needed(self, bootloader: str, secure_boot: bool) -> bool:
        """ shim-install is used for secure boot on x86 EFI """
        return bool(secure_boot) and self.efi_used(bootloader) and \
            self.arch in ('x86_64', 'i386')

    # --- proposal inputs ---
    def resume_available(self) -> bool:
        """ Hibernation resume makes sense on this platform """
        return not self.is_s390()

    def disable_os_prober(self) -> bool:
        """ Product feature forcing os-prober off """
        if self.settings is None:
            return False
        return bool(self.settings.feature('disable_os_prober', False))

    def additional_kernel_parameters(self) -> str:
        """ Product supplied kernel parameters for new kernel lines """
        if self.settings is None:
            return ''
        return str(self.settings.feature('additional_kernel_parameters', '') or '')

    def default_cpu_mitigations(self) -> str:
        """ Product default for mitigations= in new kernel lines """
        if self.settings is None:
            return 'auto'
        return str(self.settings.feature('cpu_mitigations', 'auto') or 'auto')
