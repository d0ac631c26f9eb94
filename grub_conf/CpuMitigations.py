#!/usr/bin/env python3
"""
CpuMitigations: the 'mitigations=' kernel parameter as a setting.

  auto   -> mitigations=auto
  nosmt  -> mitigations=auto,nosmt
  off    -> mitigations=off
  manual -> no mitigations= token; the admin tunes individual options
"""
import logging

from .KernelParams import KernelParams, Matcher, ReplacePlacer

log = logging.getLogger(__name__)

KERNEL_MAPPING = {
    'auto': 'auto',
    'nosmt': 'auto,nosmt',
    'off': 'off',
    'manual': None,
}
DEFAULT = 'auto'


class CpuMitigations:
    """ One of auto/nosmt/off/manual """

    def __init__(self, value: str = DEFAULT):
        if value not in KERNEL_MAPPING:
            raise ValueError(f'unknown cpu mitigations value {value!r}; '
                             f'use one of {", ".join(KERNEL_MAPPING)}')
        self.value = value

    @classmethod
    def from_kernel_params(cls, kernel_params: KernelParams) -> 'CpuMitigations':
        """ Derive the setting from a command line; absence means the default """
        param = kernel_params.parameter('mitigations')
        if param is KernelParams.ABSENT:
            return cls(DEFAULT)
        for value, kernel_value in KERNEL_MAPPING.items():
            if kernel_value is not None and kernel_value == param:
                return cls(value)
        log.info('unrecognized mitigations=%s, treating as manual', param)
        return cls('manual')

    @property
    def kernel_value(self):
        """ Value for mitigations= or None for manual """
        return KERNEL_MAPPING[self.value]

    def modify_kernel_params(self, kernel_params: KernelParams):
        """ Rewrite the mitigations= token of kernel_params to match this setting """
        matcher = Matcher(key='mitigations')
        if self.kernel_value is None:
            kernel_params.remove_parameter(matcher)
            return
        kernel_params.add_parameter('mitigations', self.kernel_value, ReplacePlacer(matcher))
        # drop leftovers so exactly one token remains
        first = True
        kept = []
        for token in kernel_params.tokens:
            if token.startswith('mitigations='):
                if not first:
                    continue
                first = False
            kept.append(token)
        kernel_params.tokens = kept

    def __eq__(self, other):
        if isinstance(other, CpuMitigations):
            return self.value == other.value
        if isinstance(other, str):
            return self.value == other
        return NotImplemented

    def __str__(self):
        return self.value

    def __repr__(self):
        return f'CpuMitigations({self.value!r})'
