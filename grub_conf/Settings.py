#!/usr/bin/env python3
"""
Settings: distro paths, command names and product features.

The packaged settings.yaml is read first; /etc/grub-conf/settings.yaml
(or the file named by $GRUB_CONF_SETTINGS) is layered on top, merging
nested mappings key by key. Paths resolve to the first candidate that
exists, commands to the first candidate found on $PATH.
"""
import logging
import os
import shutil
from importlib.resources import files
from typing import Any, Dict, List, Optional

from ruamel.yaml import YAML, YAMLError

from .Errors import BrokenConfigurationError

log = logging.getLogger(__name__)

yaml = YAML()
yaml.preserve_quotes = True
yaml.default_flow_style = False

SITE_SETTINGS = '/etc/grub-conf/settings.yaml'


def deep_merge(base: Dict[str, Any], over: Dict[str, Any]) -> Dict[str, Any]:
    """ Merge over into base (nested dicts merged, everything else replaced) """
    out = dict(base)
    for key, value in over.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = value
    return out


class Settings:
    """ Layered YAML settings """

    def __init__(self, site_path: Optional[str] = None, root: str = '/'):
        self.root = root
        resource_path = files('grub_conf') / 'settings.yaml'
        self.data: Dict[str, Any] = self._plain(yaml.load(resource_path.read_text()))
        site_path = site_path or os.environ.get('GRUB_CONF_SETTINGS') or self._rooted(SITE_SETTINGS)
        self.site_path = site_path
        if os.path.isfile(site_path):
            try:
                with open(site_path, 'r', encoding='utf-8') as fh:
                    site = self._plain(yaml.load(fh)) or {}
            except (OSError, YAMLError) as exc:
                raise BrokenConfigurationError(f'cannot read settings {site_path}: {exc}') from exc
            self.data = deep_merge(self.data, site)
            log.info('settings overlaid from %s', site_path)

    @classmethod
    def _plain(cls, node):
        """ ruamel round-trip containers to plain dicts/lists """
        if isinstance(node, dict):
            return {str(k): cls._plain(v) for k, v in node.items()}
        if isinstance(node, list):
            return [cls._plain(v) for v in node]
        return node

    def candidates(self, name: str) -> List[str]:
        """ Candidate list of a distro var """
        return list(self.data.get('_distro_vars_', {}).get(name, []))

    def _rooted(self, path: str) -> str:
        if self.root in ('', '/'):
            return path
        return os.path.join(self.root, path.lstrip('/'))

    def path(self, name: str) -> str:
        """ First existing candidate, else the first one (rooted) """
        paths = [self._rooted(p) for p in self.candidates(name)]
        for path in paths:
            if os.path.exists(path):
                return path
        if not paths:
            raise KeyError(f'no paths configured for {name!r}')
        return paths[0]

    def command(self, name: str) -> str:
        """ First candidate found on $PATH, else the first one """
        commands = self.candidates(name)
        for cmd in commands:
            resolved = shutil.which(cmd)
            if resolved:
                return resolved
        if not commands:
            raise KeyError(f'no commands configured for {name!r}')
        return commands[0]

    def feature(self, name: str, default=None):
        """ Product feature value """
        return self.data.get('product_features', {}).get(name, default)

    @property
    def backup_dir(self) -> str:
        """ Directory for /etc/default/grub backups """
        return self._rooted(self.data.get('backup_dir', '/var/lib/grub-conf/backups'))

    @property
    def mountby(self) -> List[str]:
        """ Preferred persistent name kinds, best first """
        return list(self.data.get('udev', {}).get('mountby', ['uuid', 'label', 'id', 'path']))
