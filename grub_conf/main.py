#!/usr/bin/env python3
"""
grub-conf: propose, merge and write the GRUB2 configuration

    grub-conf show                    current /etc/default/grub settings
    grub-conf propose                 fill in the undecided settings
    grub-conf merge PROFILE           put a profile on top of the proposal
    grub-conf serial enable 'serial --unit=0 --speed=115200'
    grub-conf serial disable
    grub-conf mitigations auto|nosmt|off|manual
    grub-conf entries                 boot menu entries (* = default)
    grub-conf install [--efi] [--pmbr add|remove] DEV...
    grub-conf backups                 list backups of /etc/default/grub
    grub-conf restore CHECKSUM
    grub-conf profile                 current settings as profile YAML

Changing commands save /etc/default/grub (after a backup) and regenerate
grub.cfg; with --dry-run they print the resulting file and the commands
that would run instead.
"""
# pylint: disable=invalid-name,broad-exception-caught
import logging
import os
import subprocess
import sys
from argparse import ArgumentParser

from .BackupMgr import BackupMgr
from .BootConfig import PMBR_ADD, PMBR_REMOVE, BootConfig
from .CpuMitigations import KERNEL_MAPPING
from .Errors import GrubConfError
from .GrubInstall import GrubInstall
from .Profile import dump_profile, load_profile
from .Settings import Settings
from .SysInfo import SysInfo
from .UdevMapping import UdevMapping

log = logging.getLogger(__name__)


def dry_runner(argv, env=None):
    """ Runner that only shows what would run """
    prefix = ' '.join(f'{k}={v}' for k, v in (env or {}).items() if v is not None)
    print('WOULD RUN:', (prefix + ' ' if prefix else '') + ' '.join(argv))
    return ''


def make_parser() -> ArgumentParser:
    """ The command line """
    parser = ArgumentParser(prog='grub-conf',
                            description='grub-conf: GRUB2 configuration management')
    parser.add_argument('-n', '--dry-run', action='store_true',
                        help='show the result and the commands, change nothing')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='log what is going on')
    parser.add_argument('--root', default='/',
                        help='system root to work on (default /)')
    parser.add_argument('--settings', default=None,
                        help='settings overlay (default /etc/grub-conf/settings.yaml)')
    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('show', help='show the current settings')
    sub.add_parser('propose', help='propose defaults for undecided settings')
    sub.add_parser('profile', help='print the current settings as a profile')
    merge = sub.add_parser('merge', help='merge a profile into the proposal')
    merge.add_argument('profile', help='profile YAML file')
    serial = sub.add_parser('serial', help='serial console on/off')
    serial.add_argument('action', choices=('enable', 'disable'))
    serial.add_argument('args', nargs='?', default='',
                        help="GRUB serial command, e.g. 'serial --unit=0 --speed=115200'")
    mitigations = sub.add_parser('mitigations', help='set the cpu mitigations')
    mitigations.add_argument('value', choices=tuple(KERNEL_MAPPING))
    sub.add_parser('entries', help='list boot menu entries')
    install = sub.add_parser('install', help='install the bootloader')
    install.add_argument('devices', nargs='*', help='boot devices')
    install.add_argument('--efi', action='store_true', help='install the EFI bootloader')
    install.add_argument('--pmbr', choices=(PMBR_ADD, PMBR_REMOVE), default=None,
                         help='set/clear the pmbr_boot flag on the devices')
    sub.add_parser('backups', help='list backups')
    restore = sub.add_parser('restore', help='restore a backup')
    restore.add_argument('checksum', help='checksum shown by "backups"')
    return parser


class GrubConf:
    """ Runs one command line """

    def __init__(self, opts, settings=None):
        self.opts = opts
        self.settings = settings if settings is not None else \
            Settings(site_path=opts.settings, root=opts.root)
        self.config = BootConfig(
            self.settings,
            sysinfo=SysInfo(root=opts.root, settings=self.settings),
            udev=UdevMapping(root=opts.root, mountby=self.settings.mountby),
            runner=dry_runner if opts.dry_run else None)

    def read(self) -> BootConfig:
        return self.config.read()

    def finish(self, message: str):
        """ Save (or show) the changed configuration """
        if self.opts.dry_run:
            print(self.config.grub_default.to_text(), end='')
            for argv in self.config.sections.commands():
                dry_runner(argv)
            dry_runner(self.config.mkconfig_command())
            return
        self.config.write()
        print(f'OK: {message}')

    def do_show(self):
        config = self.read()
        for key, value in config.grub_default.to_dict().items():
            print(f'{key}={value}')
        print(f'# cpu mitigations: {config.cpu_mitigations}')
        print(f'# serial console: {config.console.device if config.console else "none"}')
        print(f'# password: {"yes" if config.password.used else "no"}')
        sysinfo = config.sysinfo
        bootloader = 'grub2-efi' if sysinfo.efivars_present() else 'grub2'
        print(f'# bootloader: {bootloader}')
        print(f'# secure boot: {config.secure_boot} '
              f'(available: {sysinfo.secure_boot_available(bootloader)})')
        print(f'# trusted boot: {config.trusted_boot} '
              f'(available: {sysinfo.trusted_boot_available(bootloader)})')
        if sysinfo.writable_efivars():
            print('# efi variables: writable')
        elif sysinfo.efivars_present():
            print('# efi variables: read-only')

    def do_profile(self):
        print(dump_profile(self.read()), end='')

    def propose(self):
        """ Proposal on top of what is on disk (if anything) """
        if os.path.exists(self.config.path('etc_grub')):
            self.read()
        else:
            log.info('%s missing, proposing from scratch', self.config.path('etc_grub'))
        self.config.propose()

    def do_propose(self):
        self.propose()
        self.finish('proposal written')

    def do_merge(self):
        profile = load_profile(self.opts.profile,
                               BootConfig(self.settings, sysinfo=self.config.sysinfo))
        self.propose()
        self.config.merge(profile)
        self.finish(f'merged {self.opts.profile}')

    def do_serial(self):
        self.read()
        if self.opts.action == 'enable':
            self.config.enable_serial_console(self.opts.args)
        else:
            self.config.disable_serial_console()
        self.finish(f'serial console {self.opts.action}d')

    def do_mitigations(self):
        self.read()
        self.config.cpu_mitigations = self.opts.value
        self.finish(f'cpu mitigations set to {self.opts.value}')

    def do_entries(self):
        self.config.read_sections()
        sections = self.config.sections
        for entry in sections.all:
            mark = '*' if entry == sections.default else ' '
            print(f'{mark} {entry}')

    def do_install(self):
        config = self.read()
        sysinfo = config.sysinfo
        bootloader = 'grub2-efi' if self.opts.efi else 'grub2'
        if config.secure_boot and not sysinfo.secure_boot_available(bootloader):
            log.warning('secure boot is not available for %s on %s, ignored',
                        bootloader, sysinfo.architecture())
        trusted_boot = bool(config.trusted_boot)
        if trusted_boot and not sysinfo.trusted_boot_available(bootloader):
            log.warning('trusted boot is not available for %s on %s, ignored',
                        bootloader, sysinfo.architecture())
            trusted_boot = False
        installer = GrubInstall(sysinfo.architecture(), efi=self.opts.efi,
                                efivars_present=sysinfo.efivars_present(),
                                install_cmd=self.settings.command('install'),
                                shim_cmd=self.settings.command('shim_install'),
                                grub_cfg=config.path('grub_cfg'))
        # only x86 EFI goes through shim; s390 secure IPL needs nothing from the installer
        installer.execute(config.runner, self.opts.devices,
                          secure_boot=sysinfo.shim_needed(bootloader, config.secure_boot),
                          trusted_boot=trusted_boot)
        if self.opts.pmbr:
            config.pmbr_action = self.opts.pmbr
            config.pmbr_setup(*self.opts.devices)
        if not self.opts.dry_run:
            print('OK: bootloader installed')

    def backup_mgr(self) -> BackupMgr:
        return BackupMgr(self.config.path('etc_grub'), self.settings.backup_dir)

    def do_backups(self):
        backups = self.backup_mgr().get_backups()
        if not backups:
            print('no backups')
        for checksum, path in backups.items():
            print(f'{checksum}  {path}')

    def do_restore(self):
        mgr = self.backup_mgr()
        if self.opts.dry_run:
            print(f'WOULD RESTORE: {self.opts.checksum} to {mgr.target_path}')
            return
        mgr.create_backup('pre-restore')
        try:
            restored = mgr.restore_backup(self.opts.checksum)
        except KeyError as exc:
            raise GrubConfError(f'no backup with checksum {self.opts.checksum}') from exc
        print(f'OK: restored {restored.name}')

    def run(self):
        getattr(self, 'do_' + self.opts.command)()


def main(argv=None) -> int:
    """ grub-conf entry point """
    opts = make_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if opts.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    try:
        GrubConf(opts).run()
    except GrubConfError as exc:
        print(f'ERR: {exc}')
        return 1
    except subprocess.CalledProcessError as exc:
        print(f'ERR: {" ".join(exc.cmd)} failed with exit code {exc.returncode}')
        if exc.stderr:
            print(exc.stderr.strip())
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
