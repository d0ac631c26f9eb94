import os

import pytest

from grub_conf.Errors import UnknownDeviceError
from grub_conf.UdevMapping import UdevMapping


@pytest.fixture
def devroot(tmp_path):
    """ /dev with sda1, sda2 and persistent links for sda1 """
    dev = tmp_path / 'dev'
    (dev / 'disk' / 'by-uuid').mkdir(parents=True)
    (dev / 'disk' / 'by-id').mkdir(parents=True)
    (dev / 'sda1').write_text('')
    (dev / 'sda2').write_text('')
    os.symlink('../../sda1', dev / 'disk' / 'by-uuid' / '1111-2222')
    os.symlink('../../sda1', dev / 'disk' / 'by-id' / 'ata-DISK-part1')
    return tmp_path


def test_to_kernel_device(devroot):
    udev = UdevMapping(root=str(devroot))
    assert udev.to_kernel_device('/dev/disk/by-uuid/1111-2222') == '/dev/sda1'
    assert udev.to_kernel_device('/dev/sda2') == '/dev/sda2'


def test_unknown_device(devroot):
    with pytest.raises(UnknownDeviceError) as err:
        UdevMapping(root=str(devroot)).to_kernel_device('/dev/sdz9')
    assert err.value.device == '/dev/sdz9'


def test_empty_device(devroot):
    with pytest.raises(ValueError):
        UdevMapping(root=str(devroot)).to_kernel_device('')


def test_mountby_preference(devroot):
    assert UdevMapping(root=str(devroot)).to_mountby_device('/dev/sda1') == \
        '/dev/disk/by-uuid/1111-2222'
    assert UdevMapping(root=str(devroot), mountby=['id', 'uuid']).to_mountby_device(
        '/dev/sda1') == '/dev/disk/by-id/ata-DISK-part1'


def test_mountby_falls_back_to_kernel_name(devroot):
    assert UdevMapping(root=str(devroot)).to_mountby_device('/dev/sda2') == '/dev/sda2'


def test_cache_per_instance(devroot):
    udev = UdevMapping(root=str(devroot))
    assert udev.to_mountby_device('/dev/sda1') == '/dev/disk/by-uuid/1111-2222'
    os.unlink(devroot / 'dev' / 'disk' / 'by-uuid' / '1111-2222')
    assert udev.to_mountby_device('/dev/sda1') == '/dev/disk/by-uuid/1111-2222'
    assert UdevMapping(root=str(devroot)).to_mountby_device('/dev/sda1') == \
        '/dev/disk/by-id/ata-DISK-part1'


def test_config_mode(devroot):
    udev = UdevMapping(root=str(devroot), config_mode=True)
    assert udev.to_kernel_device('/dev/nothing') == '/dev/nothing'
    assert udev.to_mountby_device('/dev/nothing') == '/dev/nothing'
