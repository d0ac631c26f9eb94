#!/usr/bin/env python3
"""
Built-in platform tables. Not meant to be edited by users; distro and
product knobs live in settings.yaml (see Settings).

families:
  {architecture}: {family}    # how `uname -m` style names group
restricted_families: []       # no os-prober, console-only terminal
kernel_line:
  {family}:
    base: {text}              # first part of the proposed kernel line
    tail: {text}              # appended after resume/features/mitigations
install_targets:
  {architecture}:
    bios: {grub target or null}
    efi: {grub target or null}
"""

import yaml

YAML_STRING = r"""
machine_names:
  i386: i386
  i486: i386
  i586: i386
  i686: i386
  x86_64: x86_64
  amd64: x86_64
  ppc: ppc
  ppc64: ppc64
  ppc64le: ppc64
  s390: s390_32
  s390x: s390_64
  aarch64: aarch64
  arm64: aarch64
  riscv64: riscv64
families:
  i386: x86
  x86_64: x86
  ppc: ppc
  ppc64: ppc
  s390_32: s390
  s390_64: s390
  aarch64: aarch64
  riscv64: riscv64
restricted_families:
  - s390
  - ppc
kernel_line:
  x86:
    base: 'splash=silent'
    tail: quiet
  ppc:
    base: ''
    tail: quiet
  aarch64:
    base: 'splash=silent'
    tail: quiet
  riscv64:
    base: ''
    tail: quiet
  s390:
    base: 'hvc_iucv=8 TERM=dumb'
    tail: ''
install_targets:
  i386:
    bios: i386-pc
    efi: i386-efi
  x86_64:
    bios: i386-pc
    efi: x86_64-efi
  ppc:
    bios: powerpc-ieee1275
    efi: null
  ppc64:
    bios: powerpc-ieee1275
    efi: null
  s390_32:
    bios: s390x-emu
    efi: null
  s390_64:
    bios: s390x-emu
    efi: null
  aarch64:
    bios: null
    efi: arm64-efi
efi_architectures:
  - i386
  - x86_64
  - aarch64
trusted_boot_architectures:
  - i386
  - x86_64
default_timeout: '8'
default_gfxmode: auto
default_entry: saved
xen_vga_mode: gfx-1024x768x16
"""


class WiredDefaults:
    """ Platform tables loaded once from YAML_STRING """
    _data = None

    def __init__(self):
        if WiredDefaults._data is None:
            WiredDefaults._data = yaml.safe_load(YAML_STRING)
        self.data = WiredDefaults._data

    def __getitem__(self, key):
        return self.data[key]

    def architecture(self, machine: str) -> str:
        """ Normalize a `uname -m` name; unknown names pass through """
        return self.data['machine_names'].get(machine, machine)

    def family(self, arch: str) -> str:
        """ Platform family of an architecture """
        return self.data['families'].get(arch, arch)

    def is_restricted(self, arch: str) -> bool:
        """ True for families without a usable os-prober/graphics terminal """
        return self.family(arch) in self.data['restricted_families']

    def kernel_line(self, arch: str) -> dict:
        """ base/tail pieces of the proposed kernel line """
        return self.data['kernel_line'].get(self.family(arch), {'base': '', 'tail': 'quiet'})

    def install_target(self, arch: str, efi: bool):
        """ grub2-install --target value; KeyError for unknown arches """
        return self.data['install_targets'][arch]['efi' if efi else 'bios']
