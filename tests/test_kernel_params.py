import re

import pytest

from grub_conf.Errors import ParseError
from grub_conf.KernelParams import (BeforePlacer, KernelParams, Matcher, ReplacePlacer,
                                    split_token, strip_tokens)


@pytest.mark.parametrize('line', [
    'quiet splash=silent',
    'root=/dev/sda2 resume=/dev/disk/by-uuid/1234 mitigations=auto quiet',
    'console=ttyS0,115200n8 console=tty0',
    'opt=a=b novalue',
    '',
])
def test_serialize_inverts_parse(line):
    assert KernelParams.parse(line).serialize() == line


def test_parse_collapses_whitespace():
    params = KernelParams('  quiet \t splash\n')
    assert params.tokens == ['quiet', 'splash']
    assert params.serialize() == 'quiet splash'


def test_parse_bytes():
    assert KernelParams(b'quiet splash').tokens == ['quiet', 'splash']


def test_parse_invalid_encoding():
    with pytest.raises(ParseError):
        KernelParams(b'\xff\xfe quiet')


def test_parse_not_a_string():
    with pytest.raises(ParseError):
        KernelParams(42)


def test_split_token():
    assert split_token('quiet') == ('quiet', True)
    assert split_token('a=b=c') == ('a', 'b=c')
    assert split_token('empty=') == ('empty', '')


def test_parameter_lookup():
    params = KernelParams('quiet console=tty0 console=ttyS0,9600 splash=silent')
    assert params.parameter('quiet') is True
    assert params.parameter('console') == 'ttyS0,9600'
    assert params.parameter('splash') == 'silent'
    assert params.parameter('resume') is KernelParams.ABSENT
    assert params.values('console') == ['tty0', 'ttyS0,9600']


def test_add_parameter_appends():
    params = KernelParams('quiet')
    params.add_parameter('vga', 'gfx-1024x768x16')
    params.add_parameter('nomodeset')
    assert params.serialize() == 'quiet vga=gfx-1024x768x16 nomodeset'


def test_add_parameter_replaces_first_match_only():
    params = KernelParams('console=ttyS0 quiet console=ttyS1')
    params.add_parameter('console', 'ttyS2,115200', ReplacePlacer(Matcher(key='console')))
    assert params.serialize() == 'console=ttyS2,115200 quiet console=ttyS1'


def test_replace_placer_appends_without_match():
    params = KernelParams('quiet')
    params.add_parameter('mitigations', 'off', ReplacePlacer(Matcher(key='mitigations')))
    assert params.serialize() == 'quiet mitigations=off'


def test_replace_with_value_regex_keeps_other_consoles():
    params = KernelParams('console=tty0 console=ttyS0')
    matcher = Matcher(key='console', value_matcher=re.compile(r'tty(S|AMA)'))
    params.add_parameter('console', 'ttyS1,9600', ReplacePlacer(matcher))
    assert params.serialize() == 'console=tty0 console=ttyS1,9600'


def test_before_placer():
    params = KernelParams('splash=silent quiet')
    params.add_parameter('resume', '/dev/sda1', BeforePlacer(Matcher(key='quiet')))
    assert params.serialize() == 'splash=silent resume=/dev/sda1 quiet'


def test_remove_parameter():
    params = KernelParams('console=tty0 quiet console=ttyS0 console=ttyAMA0')
    params.remove_parameter(Matcher(key='console', value_matcher=re.compile(r'tty(S|AMA)')))
    assert params.serialize() == 'console=tty0 quiet'
    params.remove_parameter(Matcher(key='missing'))
    assert params.serialize() == 'console=tty0 quiet'


def test_matcher_value_kinds():
    assert Matcher('a', 'b')('a', 'b')
    assert not Matcher('a', 'b')('a', 'c')
    assert not Matcher('a', 'b')('a', True)
    assert Matcher('a', lambda v: v is True)('a', True)
    assert Matcher()('anything', 'x')


def test_replace():
    params = KernelParams('quiet')
    params.replace('splash')
    assert params == 'splash'
    assert not params.empty()
    assert KernelParams('').empty()


def test_strip_tokens_only_whole_keys():
    text = 'noresume resume=/dev/sda2 quiet myresume=1'
    assert strip_tokens(text, 'resume').split() == ['noresume', 'quiet', 'myresume=1']
