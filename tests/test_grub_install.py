import pytest

from conftest import Recorder
from grub_conf.Errors import UnsupportedPlatformError
from grub_conf.GrubInstall import GrubInstall


@pytest.mark.parametrize('arch, efi, target', [
    ('i386', False, 'i386-pc'),
    ('i386', True, 'i386-efi'),
    ('x86_64', False, 'i386-pc'),
    ('x86_64', True, 'x86_64-efi'),
    ('ppc64', False, 'powerpc-ieee1275'),
    ('s390_64', False, 's390x-emu'),
    ('aarch64', True, 'arm64-efi'),
])
def test_targets(arch, efi, target):
    assert GrubInstall(arch, efi=efi).target == target


@pytest.mark.parametrize('arch, efi', [('ppc64', True), ('s390_64', True), ('aarch64', False),
                                       ('mips', False)])
def test_unsupported_targets(arch, efi):
    with pytest.raises(UnsupportedPlatformError):
        _ = GrubInstall(arch, efi=efi).target


def test_bios_install_per_device():
    commands = GrubInstall('x86_64').commands(['/dev/sda', '/dev/sdb'])
    assert commands == [
        ['/usr/sbin/grub2-install', '--target=i386-pc', '--force', '--skip-fs-probe', '/dev/sda'],
        ['/usr/sbin/grub2-install', '--target=i386-pc', '--force', '--skip-fs-probe', '/dev/sdb'],
    ]


def test_no_device_no_install_on_bios():
    assert GrubInstall('x86_64').commands([]) == []


def test_no_device_efi_and_s390_still_install():
    assert len(GrubInstall('x86_64', efi=True).commands()) == 1
    assert GrubInstall('s390_64').commands() == [
        ['/usr/sbin/grub2-install', '--target=s390x-emu', '--force', '--skip-fs-probe']]


def test_trusted_boot():
    cmd = GrubInstall('x86_64').base_command(trusted_boot=True)
    assert cmd[-1] == '--directory=/usr/lib/trustedgrub2/i386-pc'


def test_trusted_boot_with_efi():
    with pytest.raises(UnsupportedPlatformError):
        GrubInstall('x86_64', efi=True).base_command(trusted_boot=True)


def test_secure_boot_uses_shim():
    cmd = GrubInstall('x86_64', efi=True, grub_cfg='/boot/grub2/grub.cfg').base_command(
        secure_boot=True)
    assert cmd == ['/usr/sbin/shim-install', '--config-file=/boot/grub2/grub.cfg']


def test_secure_boot_without_efi():
    with pytest.raises(UnsupportedPlatformError):
        GrubInstall('x86_64').base_command(secure_boot=True)


def test_removable_without_efivars():
    cmd = GrubInstall('aarch64', efi=True, efivars_present=False).base_command()
    assert cmd[-2:] == ['--no-nvram', '--removable']
    assert '--no-nvram' not in GrubInstall('aarch64', efi=True).base_command()


def test_execute():
    runner = Recorder()
    ran = GrubInstall('x86_64', install_cmd='grub2-install').execute(runner, ['/dev/vda'])
    assert runner.calls == ran
    assert runner.calls[0][0] == 'grub2-install'
