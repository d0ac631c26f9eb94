#!/usr/bin/env python3
"""
GrubPassword: GRUB superuser password stored in a /etc/grub.d script.

The script sets superusers="root" and a password_pbkdf2 line. With an
unrestricted menu, everyone may boot entries and only editing needs the
password.
"""
import base64
import hashlib
import logging
import os
import re
from typing import Optional

log = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 10000
PBKDF2_RE = re.compile(r'^grub\.pbkdf2\.sha512\.\d+\.[0-9A-F]+\.[0-9A-F]+$')

SCRIPT_TEMPLATE = """#! /bin/sh
set -e

# generated by grub-conf
cat << EOF
set superusers="root"
password_pbkdf2 root {encrypted}
export superusers
{unrestricted}EOF
"""


def encrypt_password(password: str, salt: Optional[bytes] = None,
                     iterations: int = PBKDF2_ITERATIONS) -> str:
    """ Hash like grub2-mkpasswd-pbkdf2 does """
    if not password:
        raise ValueError('cannot encrypt empty password')
    salt = salt if salt is not None else os.urandom(64)
    digest = hashlib.pbkdf2_hmac('sha512', password.encode('utf-8'), salt, iterations)
    return f'grub.pbkdf2.sha512.{iterations}.{salt.hex().upper()}.{digest.hex().upper()}'


class GrubPassword:
    """ Password sub-configuration; replaced wholesale on merge """
    std_location = '/etc/grub.d/42_password'

    def __init__(self, file_path: Optional[str] = None):
        self.file_path = file_path or GrubPassword.std_location
        self.used = False
        self.unrestricted = True
        self.encrypted_password: Optional[str] = None

    @property
    def password(self):
        """ Write-only; reading gives the encrypted form """
        return self.encrypted_password

    @password.setter
    def password(self, value: str):
        if value.startswith('grub.pbkdf2.'):
            if not PBKDF2_RE.match(value):
                raise ValueError('malformed grub.pbkdf2 password hash')
            self.encrypted_password = value
        else:
            self.encrypted_password = encrypt_password(value)
        self.used = True

    def read(self, file_path: Optional[str] = None):
        """ Load from the script; a missing script means no password """
        path = file_path or self.file_path
        try:
            with open(path, 'r', encoding='utf-8') as fh:
                text = fh.read()
        except FileNotFoundError:
            self.used = False
            self.encrypted_password = None
            return self
        mat = re.search(r'^password_pbkdf2\s+root\s+(\S+)', text, re.MULTILINE)
        self.used = mat is not None
        self.encrypted_password = mat.group(1) if mat else None
        self.unrestricted = 'unrestricted_menu="y"' in text
        return self

    def to_script(self) -> str:
        """ Content of the grub.d script """
        unrestricted = 'set unrestricted_menu="y"\nexport unrestricted_menu\n' \
            if self.unrestricted else ''
        return SCRIPT_TEMPLATE.format(encrypted=self.encrypted_password,
                                      unrestricted=unrestricted)

    def write(self, file_path: Optional[str] = None):
        """ Write the script, or remove it when no password is used """
        path = file_path or self.file_path
        if not self.used or not self.encrypted_password:
            if os.path.exists(path):
                os.unlink(path)
                log.info('removed %s', path)
            return
        with open(path, 'w', encoding='utf-8') as fh:
            fh.write(self.to_script())
        os.chmod(path, 0o700)
        log.info('wrote %s', path)

    def __repr__(self):
        return f'GrubPassword(used={self.used}, unrestricted={self.unrestricted})'
