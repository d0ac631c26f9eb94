#!/usr/bin/env python3
"""
ProposalEngine: fills the undecided parts of a BootConfig with the
defaults for the current platform.

Explicit values are left alone, with a few exceptions that always
reflect the platform: the cryptodisk flag, the default entry selector
("saved"), the snapshot boot hint, the serial console (re-derived from
the kernel line) and the trusted/secure boot flags.
"""
import logging

from .CpuMitigations import CpuMitigations
from .Errors import TerminalError
from .KernelParams import Matcher, ReplacePlacer
from .SerialConsole import SerialConsole
from .WiredDefaults import WiredDefaults

log = logging.getLogger(__name__)


class ProposalEngine:
    """ One proposal run over a BootConfig """

    def __init__(self, config, sysinfo, storage, udev):
        self.config = config
        self.grub_default = config.grub_default
        self.sysinfo = sysinfo
        self.storage = storage
        self.udev = udev
        self.wired = WiredDefaults()

    def propose(self):
        """ Run every proposal step; later steps see the earlier results """
        self.propose_os_prober()
        self.propose_terminal()
        self.propose_timeout()
        self.propose_encrypted()
        self.propose_kernel_params()
        self.propose_scalars()
        self.propose_serial()
        self.propose_xen_hypervisor()
        self.propose_boot_flags()
        log.info('proposed %r', self.grub_default)

    def propose_os_prober(self):
        os_prober = self.grub_default.os_prober
        if os_prober.defined():
            return
        if self.sysinfo.is_restricted() or self.sysinfo.disable_os_prober():
            os_prober.disable()
        else:
            os_prober.enable()

    def propose_terminal(self):
        try:
            if self.grub_default.terminal:
                return
        except TerminalError as exc:
            log.info('proposing terminal again due to %s', exc)

        if self.sysinfo.is_restricted():
            self.grub_default.terminal = ['console']
            if self.sysinfo.is_ppc():
                self.grub_default.generic_set('GRUB_GFXPAYLOAD_LINUX', 'text')
        else:
            self.grub_default.terminal = ['gfxterm']

    def propose_timeout(self):
        if self.grub_default.timeout is None:
            self.grub_default.timeout = self.wired['default_timeout']

    def propose_encrypted(self):
        encrypted = self.storage.encrypted_boot()
        log.info('boot device encrypted: %s', encrypted)
        self.grub_default.cryptodisk.value = encrypted

    def resume_hint(self) -> str:
        """ 'resume=<largest swap>' or '' """
        if not self.sysinfo.resume_available():
            return ''
        swaps = self.storage.available_swap_partitions()
        if not swaps:
            log.info('no swap partitions, no resume device')
            return ''
        largest = max(swaps, key=swaps.get)
        log.info('largest swap partition: %s', largest)
        return f'resume={self.udev.to_mountby_device(largest)}'

    def default_kernel_line(self) -> str:
        """ Kernel line proposed for an empty GRUB_CMDLINE_LINUX_DEFAULT """
        line = self.wired.kernel_line(self.sysinfo.architecture())
        mitigations = CpuMitigations(self.sysinfo.default_cpu_mitigations())
        parts = [line['base'], self.resume_hint(),
                 self.sysinfo.additional_kernel_parameters()]
        if mitigations.kernel_value is not None:
            parts.append(f'mitigations={mitigations.kernel_value}')
        parts.append(line['tail'])
        return ' '.join(p for p in parts if p)

    def propose_kernel_params(self):
        if self.grub_default.kernel_params.empty():
            self.grub_default.kernel_params.replace(self.default_kernel_line())

    def propose_scalars(self):
        gd = self.grub_default
        if gd.gfxmode is None:
            gd.gfxmode = self.wired['default_gfxmode']
        if not gd.recovery_entry.defined():
            gd.recovery_entry.disable()
        if gd.distributor is None:
            gd.distributor = ''
        gd.default = self.wired['default_entry']
        gd.generic_set('SUSE_BTRFS_SNAPSHOT_BOOTING', 'true')

    def propose_serial(self):
        console = SerialConsole.load_from_kernel_args(
            self.grub_default.kernel_params, aarch64=self.sysinfo.is_aarch64())
        self.config.console = console
        if console is None:
            return
        log.info('serial console %s found on the kernel line', console.device)
        self.grub_default.serial_console = console.console_args()
        if self.sysinfo.family() == 'x86':
            self.grub_default.xen_kernel_params.replace(console.xen_kernel_args())
            self.grub_default.xen_hypervisor_params.replace(console.xen_hypervisor_args())

    def propose_xen_hypervisor(self):
        if self.config.serial_console():
            return
        if not self.sysinfo.framebuffer_present():
            return
        self.grub_default.xen_hypervisor_params.add_parameter(
            'vga', self.wired['xen_vga_mode'], ReplacePlacer(Matcher(key='vga')))

    def propose_boot_flags(self):
        self.config.trusted_boot = False
        self.config.secure_boot = self.sysinfo.secure_boot_active()
