#!/usr/bin/env python3
"""
GrubCfg / Sections: the boot menu as far as grub-conf cares about it.

GrubCfg only lists entry titles of a generated grub.cfg (entries
inside a submenu are reported as 'Submenu>Entry', the form accepted by
grub2-set-default). Sections adds the saved default taken from grubenv
and writes it back through grub2-set-default.
"""
import logging
import re
from typing import Callable, List, Optional

from .Errors import GrubConfError

log = logging.getLogger(__name__)

ENTRY_RE = re.compile(r"""^\s*(menuentry|submenu)\s+(?:'([^']*)'|"([^"]*)"|(\S+))""")


class GrubCfg:
    """ Titles of the entries in grub.cfg """

    def __init__(self, text: str = ''):
        self.text = text

    @classmethod
    def from_file(cls, path: str) -> 'GrubCfg':
        """ Read grub.cfg; FileNotFoundError is left to the caller """
        with open(path, 'r', encoding='utf-8', errors='replace') as fh:
            return cls(fh.read())

    def boot_entries(self) -> List[str]:
        """ Bootable entry titles, submenu entries as 'Submenu>Entry' """
        entries = []
        stack = []  # (kind, title, depth at which it was opened)
        depth = 0
        for line in self.text.splitlines():
            mat = ENTRY_RE.match(line)
            if mat:
                kind = mat.group(1)
                title = next(g for g in mat.group(2, 3, 4) if g is not None)
                if kind == 'menuentry':
                    parents = [t for k, t, _ in stack if k == 'submenu']
                    entries.append('>'.join(parents + [title]))
                stack.append((kind, title, depth))
            depth += line.count('{') - line.count('}')
            while stack and depth <= stack[-1][2]:
                stack.pop()
        return entries


class Sections:
    """ Boot menu entries and the saved default """

    def __init__(self, grub_cfg: Optional[GrubCfg] = None, grubenv_path: Optional[str] = None,
                 set_default_cmd: str = 'grub2-set-default',
                 runner: Optional[Callable] = None):
        self.all: List[str] = grub_cfg.boot_entries() if grub_cfg else []
        self.set_default_cmd = set_default_cmd
        self.runner = runner
        self._default: Optional[str] = None
        if grubenv_path:
            self._default = self.read_saved_entry(grubenv_path)

    @staticmethod
    def read_saved_entry(grubenv_path: str) -> Optional[str]:
        """ saved_entry from grubenv, None when absent """
        try:
            with open(grubenv_path, 'r', encoding='utf-8', errors='replace') as fh:
                for line in fh:
                    if line.startswith('saved_entry='):
                        return line.split('=', 1)[1].rstrip('\n')
        except FileNotFoundError:
            log.info('%s does not exist, no saved entry', grubenv_path)
        return None

    @property
    def default(self) -> Optional[str]:
        """ Entry booted by default ('saved' mode); None if never set """
        if self._default is None and self.all:
            return self.all[0]
        return self._default

    @default.setter
    def default(self, value: Optional[str]):
        self._default = value

    @property
    def saved_default(self) -> Optional[str]:
        """ Default chosen explicitly (grubenv or assignment), no fallback """
        return self._default

    def commands(self) -> List[List[str]]:
        """ argv lists needed to persist the default """
        if not self._default:
            return []
        return [[self.set_default_cmd, self._default]]

    def write(self):
        """ Persist the default entry """
        if self.runner is None:
            if self.commands():
                raise GrubConfError('no command runner configured for boot menu sections')
            return
        for argv in self.commands():
            self.runner(argv)
