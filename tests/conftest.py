"""
Shared fixtures: a fake filesystem root, settings rooted in it, and
recording stand-ins for the command runner and the storage probe.
"""
import json
import os

import pytest

from grub_conf.BootConfig import BootConfig
from grub_conf.Settings import Settings
from grub_conf.StorageInfo import StorageInfo
from grub_conf.SysInfo import SysInfo


class Recorder:
    """ Runner that remembers every argv instead of running it """

    def __init__(self, output=''):
        self.calls = []
        self.envs = []
        self.output = output

    def __call__(self, argv, env=None):
        self.calls.append(list(argv))
        self.envs.append(env)
        return self.output


class FakeUdev:
    """ Persistent names from a plain dict """

    def __init__(self, names=None):
        self.names = names or {}
        self.asked = []

    def to_mountby_device(self, dev):
        self.asked.append(dev)
        return self.names.get(dev, dev)


def lsblk_json(*devices):
    """ lsblk -J output with the given top level devices """
    return json.dumps({'blockdevices': list(devices)})


def write_file(root, path, text):
    """ Create root/path with text """
    full = os.path.join(str(root), path.lstrip('/'))
    os.makedirs(os.path.dirname(full), exist_ok=True)
    with open(full, 'w', encoding='utf-8') as fh:
        fh.write(text)
    return full


@pytest.fixture
def root(tmp_path, monkeypatch):
    """ Empty system root """
    monkeypatch.delenv('GRUB_CONF_SETTINGS', raising=False)
    return tmp_path


@pytest.fixture
def settings(root):
    """ Settings with every path below root and no site overlay """
    return Settings(site_path=str(root / 'no-site.yaml'), root=str(root))


@pytest.fixture
def runner():
    return Recorder()


@pytest.fixture
def no_storage():
    """ No swap, nothing encrypted """
    return StorageInfo(lsblk_json=lsblk_json())


@pytest.fixture
def make_config(root, settings, runner, no_storage):
    """ BootConfig factory for an architecture """
    def factory(arch='x86_64', storage=None, udev=None):
        sysinfo = SysInfo(root=str(root), arch=arch, settings=settings)
        return BootConfig(settings, sysinfo=sysinfo, storage=storage or no_storage,
                          udev=udev or FakeUdev(), runner=runner)
    return factory
