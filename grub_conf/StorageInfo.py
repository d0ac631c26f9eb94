#!/usr/bin/env python3
"""
StorageInfo: swap partitions and boot encryption, taken from one
`lsblk -J -b` scan that is cached for the life of the instance.
"""
# pylint: disable=too-few-public-methods
import json
import logging
import subprocess
from types import SimpleNamespace
from typing import Dict, List, Optional

log = logging.getLogger(__name__)

LSBLK_CMD = ['lsblk', '-J', '-b', '-o', 'NAME,PATH,FSTYPE,SIZE,MOUNTPOINT,TYPE']
LUKS_TYPES = ('crypto_luks', 'crypto_luks2')


class StorageInfo:
    """ Block device facts used by the proposal """

    def __init__(self, lsblk_json: Optional[str] = None):
        # lsblk_json: pre-captured output (tests, offline analysis)
        self._lsblk_json = lsblk_json
        self._layout_cache: Optional[SimpleNamespace] = None

    def _run_lsblk(self) -> str:
        process = subprocess.run(LSBLK_CMD, capture_output=True, text=True, check=True)
        return process.stdout

    def probe_disk_layout(self) -> SimpleNamespace:
        """
        Flattens the lsblk tree once.

        Returns:
            SimpleNamespace(devices=[SimpleNamespace(path, fstype, size,
                            mountpoint, type, ancestors)])
            where ancestors lists the fstypes of every parent device.
        """
        if self._layout_cache is not None:
            return self._layout_cache

        raw = self._lsblk_json if self._lsblk_json is not None else self._run_lsblk()
        data = json.loads(raw)
        devices: List[SimpleNamespace] = []

        def walk(node, ancestors):
            fstype = (node.get('fstype') or '').lower()
            path = node.get('path') or f"/dev/{node.get('name', '')}"
            try:
                size = int(node.get('size') or 0)
            except (TypeError, ValueError):
                size = 0
            devices.append(SimpleNamespace(
                path=path, fstype=fstype, size=size,
                mountpoint=node.get('mountpoint'),
                type=node.get('type'), ancestors=list(ancestors)))
            for child in node.get('children', []) or []:
                walk(child, ancestors + [fstype])

        for device in data.get('blockdevices', []):
            walk(device, [])

        self._layout_cache = SimpleNamespace(devices=devices)
        return self._layout_cache

    def available_swap_partitions(self) -> Dict[str, int]:
        """ swap device path -> size in bytes """
        layout = self.probe_disk_layout()
        return {d.path: d.size for d in layout.devices if d.fstype == 'swap'}

    def encrypted_boot(self) -> bool:
        """ /boot (or / when /boot is not separate) lives on LUKS """
        layout = self.probe_disk_layout()
        by_mount = {d.mountpoint: d for d in layout.devices if d.mountpoint}
        boot = by_mount.get('/boot') or by_mount.get('/')
        if boot is None:
            log.info('no device mounted at /boot or /, assuming unencrypted boot')
            return False
        return boot.fstype in LUKS_TYPES or any(f in LUKS_TYPES for f in boot.ancestors)
