#!/usr/bin/env python3
"""
Profile: an autoinstallation style description of the bootloader.

Example:

    global:
      timeout: 5
      terminal: serial console
      serial: serial --unit=0 --speed=115200 --parity=no
      append: quiet splash=silent
      os_prober: false
      cpu_mitigations: 'off'
      password: secret
      pmbr: add
      boot_entry: openSUSE
    extra:
      GRUB_DISABLE_SUBMENU: 'true'

Only what the profile mentions is set; everything else stays
undecided, so merging the loaded profile into a proposal keeps the
proposed values for the rest.
"""
import io
import logging
from typing import Any, Dict, Optional

from ruamel.yaml import YAML, YAMLError

from .BootConfig import PMBR_ACTIONS, BootConfig
from .Errors import BrokenConfigurationError

log = logging.getLogger(__name__)

yaml = YAML()
yaml.default_flow_style = False

KERNEL_ATTRS = {
    'append': 'kernel_params',
    'xen_append': 'xen_hypervisor_params',
    'xen_kernel_append': 'xen_kernel_params',
}
STRING_ATTRS = {
    'timeout': 'timeout',
    'hidden_timeout': 'hidden_timeout',
    'distributor': 'distributor',
    'gfxmode': 'gfxmode',
    'theme': 'theme',
    'default': 'default',
}
BOOL_ATTRS = {
    'os_prober': 'os_prober',
    'cryptodisk': 'cryptodisk',
    'recovery_entry': 'recovery_entry',
}
OTHER_KEYS = ('terminal', 'serial', 'cpu_mitigations', 'password',
              'password_unrestricted', 'trusted_boot', 'secure_boot',
              'pmbr', 'boot_entry')
TRUTHY = ('true', 'yes', 'y', 'on', '1')
FALSY = ('false', 'no', 'n', 'off', '0')


def _text(value) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return '' if value is None else str(value)


def _flag(key: str, value) -> bool:
    """ YAML 1.2 leaves yes/no/on/off (and anything quoted) as strings """
    if isinstance(value, bool):
        return value
    text = _text(value).strip().lower()
    if text in TRUTHY:
        return True
    if text in FALSY:
        return False
    raise BrokenConfigurationError(f'invalid value {value!r} for {key}; use true or false')


def profile_to_config(data: Dict[str, Any], config: Optional[BootConfig] = None) -> BootConfig:
    """ Apply the parsed profile to config (a fresh BootConfig by default) """
    config = config if config is not None else BootConfig()
    data = data or {}
    unknown = set(data) - {'global', 'extra'}
    if unknown:
        raise BrokenConfigurationError(f'unknown profile sections: {", ".join(sorted(unknown))}')
    glob = data.get('global') or {}
    unknown = set(glob) - set(KERNEL_ATTRS) - set(STRING_ATTRS) - set(BOOL_ATTRS) - set(OTHER_KEYS)
    if unknown:
        raise BrokenConfigurationError(f'unknown profile keys: {", ".join(sorted(unknown))}')

    gd = config.grub_default
    for key, attr in KERNEL_ATTRS.items():
        if key in glob:
            getattr(gd, attr).replace(_text(glob[key]))
    for key, attr in STRING_ATTRS.items():
        if key in glob and glob[key] is not None:
            setattr(gd, attr, _text(glob[key]))
    for key, attr in BOOL_ATTRS.items():
        if key in glob and glob[key] is not None:
            getattr(gd, attr).value = _flag(key, glob[key])

    if glob.get('terminal'):
        gd.terminal = _text(glob['terminal'])
    if 'serial' in glob:
        if glob['serial']:
            config.enable_serial_console(_text(glob['serial']))
        else:
            config.disable_serial_console()
    if glob.get('cpu_mitigations') is not None:
        try:
            config.cpu_mitigations = _text(glob['cpu_mitigations'])
        except ValueError as exc:
            raise BrokenConfigurationError(str(exc)) from exc

    if glob.get('password'):
        try:
            config.password.password = _text(glob['password'])
        except ValueError as exc:
            raise BrokenConfigurationError(str(exc)) from exc
    if glob.get('password_unrestricted') is not None:
        config.password.unrestricted = _flag('password_unrestricted',
                                             glob['password_unrestricted'])

    for key in ('trusted_boot', 'secure_boot'):
        if glob.get(key) is not None:
            setattr(config, key, _flag(key, glob[key]))

    if glob.get('pmbr') is not None:
        if glob['pmbr'] not in PMBR_ACTIONS:
            raise BrokenConfigurationError(
                f"invalid pmbr action {glob['pmbr']!r}; use one of {', '.join(PMBR_ACTIONS)}")
        config.pmbr_action = glob['pmbr']
    if glob.get('boot_entry'):
        config.sections.default = _text(glob['boot_entry'])

    for key, value in (data.get('extra') or {}).items():
        gd.generic_set(str(key), None if value is None else _text(value))
    return config


def parse_profile(text: str, config: Optional[BootConfig] = None) -> BootConfig:
    """ BootConfig from profile YAML text """
    try:
        data = yaml.load(text)
    except YAMLError as exc:
        raise BrokenConfigurationError(f'invalid profile: {exc}') from exc
    if data is not None and not isinstance(data, dict):
        raise BrokenConfigurationError('profile must be a mapping')
    return profile_to_config(data, config)


def load_profile(path: str, config: Optional[BootConfig] = None) -> BootConfig:
    """ BootConfig from a profile file """
    try:
        with open(path, 'r', encoding='utf-8') as fh:
            text = fh.read()
    except OSError as exc:
        raise BrokenConfigurationError(f'cannot read profile {path}: {exc}') from exc
    log.info('loading profile %s', path)
    return parse_profile(text, config)


def config_to_profile(config: BootConfig) -> Dict[str, Any]:
    """ The profile describing config; unset values are left out """
    gd = config.grub_default
    glob: Dict[str, Any] = {}
    for key, attr in KERNEL_ATTRS.items():
        params = getattr(gd, attr)
        if not params.empty():
            glob[key] = params.serialize()
    for key, attr in STRING_ATTRS.items():
        if getattr(gd, attr) is not None:
            glob[key] = getattr(gd, attr)
    for key, attr in BOOL_ATTRS.items():
        if getattr(gd, attr).defined():
            glob[key] = getattr(gd, attr).value
    if gd.terminal_text is not None:
        glob['terminal'] = gd.terminal_text
    if gd.serial_console:
        glob['serial'] = gd.serial_console
    if config.explicit_cpu_mitigations is not None:
        glob['cpu_mitigations'] = str(config.explicit_cpu_mitigations)
    if config.password.used and config.password.encrypted_password:
        glob['password'] = config.password.encrypted_password
        glob['password_unrestricted'] = config.password.unrestricted
    for key in ('trusted_boot', 'secure_boot'):
        if getattr(config, key) is not None:
            glob[key] = getattr(config, key)
    if config.pmbr_action in PMBR_ACTIONS[1:]:
        glob['pmbr'] = config.pmbr_action
    if config.sections.saved_default:
        glob['boot_entry'] = config.sections.saved_default

    data: Dict[str, Any] = {'global': glob}
    extra = {k: gd.generic_get(k) for k in gd.generic_keys()}
    if extra:
        data['extra'] = extra
    return data


def dump_profile(config: BootConfig) -> str:
    """ Profile YAML for config """
    stream = io.StringIO()
    yaml.dump(config_to_profile(config), stream)
    return stream.getvalue()
