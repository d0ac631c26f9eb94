#!/usr/bin/env python3
"""
MergeEngine: puts one BootConfig (the override, typically an
autoinstallation profile) on top of another (the base, typically the
proposal) and leaves the result in the base.

Scalars and the terminal follow "override if set". Tri-state booleans
(os-prober, cryptodisk, recovery entry) are copied only when the override
defines them. The serial console is read back from the merged kernel line
unless the override switched it off. Kernel lines are concatenated
and then purged of exact duplicate tokens, keeping the last one; tokens
for the same key with different values both survive.
"""
import logging

from .BootConfig import PMBR_NOTHING
from .GrubDefault import GrubDefault
from .KernelParams import KernelParams, strip_tokens
from .SerialConsole import SerialConsole

log = logging.getLogger(__name__)

SCALAR_ATTRS = ('serial_console', 'timeout', 'hidden_timeout', 'distributor',
                'gfxmode', 'theme', 'default')


def merge_kernel_line(base: KernelParams, override: KernelParams):
    """ Merge override's tokens into base in place """
    if override.empty():
        return
    text = base.serialize()
    if override.parameter('noresume') is not KernelParams.ABSENT:
        text = strip_tokens(text, 'resume')
    if override.parameter('mitigations') is not KernelParams.ABSENT:
        text = strip_tokens(text, 'mitigations')

    tokens = KernelParams.tokenize(f'{text} {override.serialize()}')
    # dict keeps first-seen order; scanning reversed keeps the last copy
    kept = list(reversed(list(dict.fromkeys(reversed(tokens)))))
    base.replace(' '.join(kept))


class MergeEngine:
    """ Merges into `base` """

    def __init__(self, base):
        self.base = base

    def merge(self, other):
        log.info('merging: %r', self.base.grub_default)
        log.info('with: %r', other.grub_default)

        self.merge_grub_default(other)
        self.merge_password(other)
        self.merge_pmbr(other)
        self.merge_sections(other)
        self.merge_boot_flags(other)

        log.info('merge result: %r', self.base.grub_default)

    def merge_grub_default(self, other):
        dest: GrubDefault = self.base.grub_default
        src: GrubDefault = other.grub_default

        for attr in GrubDefault.KERNEL_KEYS:
            merge_kernel_line(getattr(dest, attr), getattr(src, attr))

        for attr in SCALAR_ATTRS:
            value = getattr(src, attr)
            if value is not None:
                setattr(dest, attr, value)

        if src.terminal_text is not None:
            dest.terminal = src.terminal_text

        for key in src.generic_keys():
            dest.generic_set(key, src.generic_get(key))

        for attr in GrubDefault.BOOL_KEYS:
            setting = getattr(src, attr)
            if setting.defined():
                getattr(dest, attr).value = setting.value

        mitigations = other.explicit_cpu_mitigations
        if mitigations is not None:
            self.base.cpu_mitigations = mitigations

        if src.serial_console == '':
            self.base.disable_serial_console()
        else:
            self.base.console = SerialConsole.load_from_kernel_args(
                dest.kernel_params, aarch64=self.base.sysinfo.is_aarch64())

    def merge_password(self, other):
        self.base.password = other.password

    def merge_pmbr(self, other):
        if other.pmbr_action and other.pmbr_action != PMBR_NOTHING:
            self.base.pmbr_action = other.pmbr_action

    def merge_sections(self, other):
        default = other.sections.saved_default
        if default:
            self.base.sections.default = default

    def merge_boot_flags(self, other):
        if other.trusted_boot is not None:
            self.base.trusted_boot = other.trusted_boot
        if other.secure_boot is not None:
            self.base.secure_boot = other.secure_boot
