#!/usr/bin/env python3
"""
UdevMapping: translate between kernel device names (/dev/sda2) and
persistent udev names (/dev/disk/by-uuid/..., by-label, by-id, by-path).

An instance is scoped to one configuration session and caches every
answer keyed by the raw device string it was asked about.
"""
import logging
import os
from typing import Dict, List, Optional

from .Errors import UnknownDeviceError

log = logging.getLogger(__name__)

DEFAULT_MOUNTBY = ['uuid', 'label', 'id', 'path']


class UdevMapping:
    """ Device name resolver with a per-session cache """

    def __init__(self, root: str = '/', mountby: Optional[List[str]] = None,
                 config_mode: bool = False):
        """
        Args:
            root: filesystem root holding /dev (a tmp dir in tests)
            mountby: preferred persistent name kinds, best first
            config_mode: profile editing without real devices; names
                are returned unchanged
        """
        self.root = root
        self.mountby = list(mountby) if mountby else list(DEFAULT_MOUNTBY)
        self.config_mode = config_mode
        self._kernel_cache: Dict[str, str] = {}
        self._mountby_cache: Dict[str, str] = {}

    def _path(self, dev: str) -> str:
        return os.path.join(self.root, dev.lstrip('/'))

    def _unroot(self, path: str) -> str:
        root = os.path.realpath(self.root)
        if root in ('', '/'):
            return path
        rel = os.path.relpath(path, root)
        return '/' + rel

    def to_kernel_device(self, dev: str) -> str:
        """
        Kernel name for a udev, mdadm or kernel device name.
        Raises UnknownDeviceError when the device does not exist.
        """
        log.info('call to_kernel_device for %s', dev)
        if not dev:
            raise ValueError(f'invalid device {dev!r}')
        if self.config_mode:
            return dev
        if dev in self._kernel_cache:
            return self._kernel_cache[dev]

        path = self._path(dev)
        if not os.path.exists(path):
            raise UnknownDeviceError(dev)
        kernel = self._unroot(os.path.realpath(path))
        self._kernel_cache[dev] = kernel
        return kernel

    def to_mountby_device(self, dev: str) -> str:
        """
        Best persistent name for a device, following the mountby order.
        Falls back to the kernel name when the device has no udev link.
        """
        if dev in self._mountby_cache:
            return self._mountby_cache[dev]
        kernel_dev = self.to_kernel_device(dev)
        log.info('%s looked as kernel device name: %s', dev, kernel_dev)
        if self.config_mode:
            return dev

        target = os.path.realpath(self._path(kernel_dev))
        result = None
        for kind in self.mountby:
            by_dir = self._path(f'/dev/disk/by-{kind}')
            if not os.path.isdir(by_dir):
                continue
            for entry in sorted(os.listdir(by_dir)):
                if os.path.realpath(os.path.join(by_dir, entry)) == target:
                    result = f'/dev/disk/by-{kind}/{entry}'
                    break
            if result:
                break

        if result is None:
            log.error('Cannot find udev name for %s', kernel_dev)
            result = kernel_dev
        log.info('udev device for %r is %r', dev, result)
        self._mountby_cache[dev] = result
        return result
