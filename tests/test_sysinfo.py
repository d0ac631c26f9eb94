import pytest

from conftest import write_file
from grub_conf.SysInfo import SysInfo


def sysinfo(root, arch='x86_64', settings=None):
    return SysInfo(root=str(root), arch=arch, settings=settings)


@pytest.mark.parametrize('machine, arch, family, restricted', [
    ('x86_64', 'x86_64', 'x86', False),
    ('i686', 'i386', 'x86', False),
    ('ppc64le', 'ppc64', 'ppc', True),
    ('s390x', 's390_64', 's390', True),
    ('arm64', 'aarch64', 'aarch64', False),
])
def test_architecture(tmp_path, machine, arch, family, restricted):
    info = sysinfo(tmp_path, machine)
    assert info.architecture() == arch
    assert info.family() == family
    assert info.is_restricted() is restricted


def test_framebuffer(tmp_path):
    assert not sysinfo(tmp_path).framebuffer_present()
    write_file(tmp_path, '/dev/fb0', '')
    assert sysinfo(tmp_path).framebuffer_present()


def test_efivars(tmp_path):
    info = sysinfo(tmp_path)
    assert not info.efivars_present()
    assert not info.writable_efivars()
    write_file(tmp_path, '/sys/firmware/efi/efivars/Boot0000-8be4df61', 'x')
    write_file(tmp_path, '/proc/mounts', 'efivarfs /sys/firmware/efi/efivars efivarfs ro,nosuid 0 0\n')
    assert info.efivars_present()
    assert not info.writable_efivars()
    write_file(tmp_path, '/proc/mounts', 'efivarfs /sys/firmware/efi/efivars efivarfs rw,nosuid 0 0\n')
    assert info.writable_efivars()


def test_secure_boot_from_sysconfig(tmp_path):
    assert not sysinfo(tmp_path).secure_boot_active()
    write_file(tmp_path, '/etc/sysconfig/bootloader', 'SECURE_BOOT="yes"\n')
    assert sysinfo(tmp_path).secure_boot_active()


def test_s390_secure_boot(tmp_path):
    write_file(tmp_path, '/etc/sysconfig/bootloader', 'SECURE_BOOT="yes"\n')
    info = sysinfo(tmp_path, 's390x')
    assert not info.secure_boot_active()
    assert not info.s390_secure_boot_available()
    write_file(tmp_path, '/sys/firmware/ipl/has_secure', '1\n')
    write_file(tmp_path, '/sys/firmware/ipl/secure', '1\n')
    assert info.s390_secure_boot_available()
    assert info.secure_boot_active()
    assert info.secure_boot_available('grub2')


def test_s390_files_ignored_elsewhere(tmp_path):
    write_file(tmp_path, '/sys/firmware/ipl/has_secure', '1\n')
    assert not sysinfo(tmp_path).s390_secure_boot_available()


def test_efi(tmp_path):
    x86 = sysinfo(tmp_path)
    assert x86.efi_used('grub2-efi')
    assert not x86.efi_used('grub2')
    assert x86.efi_supported()
    assert x86.secure_boot_available('grub2-efi')
    assert not x86.secure_boot_available('grub2')
    assert x86.shim_needed('grub2-efi', True)
    assert not x86.shim_needed('grub2-efi', False)
    assert not sysinfo(tmp_path, 'aarch64').shim_needed('grub2-efi', True)
    assert not sysinfo(tmp_path, 'ppc64').efi_supported()


def test_trusted_boot(tmp_path):
    info = sysinfo(tmp_path)
    assert not info.trusted_boot_active()
    assert info.trusted_boot_available('grub2')
    assert not info.trusted_boot_available('grub2-efi')
    write_file(tmp_path, '/dev/tpm0', '')
    assert info.trusted_boot_available('grub2-efi')
    assert not sysinfo(tmp_path, 'aarch64').trusted_boot_available('grub2')
    write_file(tmp_path, '/etc/sysconfig/bootloader', 'TRUSTED_BOOT="yes"\n')
    assert info.trusted_boot_active()


def test_resume(tmp_path):
    assert sysinfo(tmp_path).resume_available()
    assert not sysinfo(tmp_path, 's390x').resume_available()


def test_product_features(tmp_path, settings):
    info = sysinfo(tmp_path, settings=settings)
    assert info.disable_os_prober() is False
    assert info.additional_kernel_parameters() == ''
    assert info.default_cpu_mitigations() == 'auto'
    settings.data['product_features']['cpu_mitigations'] = 'off'
    assert info.default_cpu_mitigations() == 'off'


def test_product_features_without_settings(tmp_path):
    info = sysinfo(tmp_path)
    assert info.disable_os_prober() is False
    assert info.default_cpu_mitigations() == 'auto'
