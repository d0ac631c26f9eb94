import pytest

from grub_conf.Errors import BrokenConfigurationError, TerminalError
from grub_conf.GrubDefault import BoolSetting, GrubDefault, cleanse, quote, read_sysconfig, unquote

SAMPLE = """\
# If you change this file, run 'grub2-mkconfig -o /boot/grub2/grub.cfg'
GRUB_DISTRIBUTOR=
GRUB_DEFAULT=saved
GRUB_HIDDEN_TIMEOUT=0
GRUB_TIMEOUT=8  # seconds
GRUB_CMDLINE_LINUX_DEFAULT="splash=silent   resume=/dev/sda2 quiet"
GRUB_CMDLINE_LINUX=""
GRUB_DISABLE_OS_PROBER="false"
GRUB_TERMINAL="gfxterm"
#GRUB_GFXMODE="640x480"
GRUB_ENABLE_CRYPTODISK=y
SUSE_BTRFS_SNAPSHOT_BOOTING="true"
"""


def test_unchanged_document_is_byte_identical():
    doc = GrubDefault.from_text(SAMPLE)
    assert doc.to_text() == SAMPLE


def test_reading():
    doc = GrubDefault.from_text(SAMPLE)
    assert doc.distributor == ''
    assert doc.default == 'saved'
    assert doc.timeout == '8'
    assert doc.gfxmode is None
    assert doc.theme is None
    assert doc.kernel_params.serialize() == 'splash=silent resume=/dev/sda2 quiet'
    assert doc.xen_kernel_params.empty()
    assert doc.os_prober.enabled()
    assert doc.cryptodisk.enabled()
    assert not doc.recovery_entry.defined()
    assert doc.terminal == ['gfxterm']
    assert doc.generic_get('SUSE_BTRFS_SNAPSHOT_BOOTING') == 'true'
    assert doc.generic_get('GRUB_CMDLINE_LINUX') == ''
    assert 'GRUB_GFXMODE' not in doc.generic_keys()


def test_changed_key_rewritten_in_place():
    doc = GrubDefault.from_text(SAMPLE)
    doc.timeout = '5'
    lines = doc.to_text().splitlines()
    assert lines[4] == 'GRUB_TIMEOUT="5"'
    assert len(lines) == len(SAMPLE.splitlines())


def test_new_key_replaces_commented_line():
    doc = GrubDefault.from_text(SAMPLE)
    doc.gfxmode = 'auto'
    lines = doc.to_text().splitlines()
    assert lines[9] == 'GRUB_GFXMODE="auto"'


def test_new_key_appended_and_unset_key_commented():
    doc = GrubDefault.from_text(SAMPLE)
    doc.theme = '/boot/grub2/themes/x/theme.txt'
    doc.hidden_timeout = None
    text = doc.to_text()
    assert text.endswith('GRUB_THEME="/boot/grub2/themes/x/theme.txt"\n')
    assert '#GRUB_HIDDEN_TIMEOUT=0\n' in text


def test_kernel_param_edit_serialized():
    doc = GrubDefault.from_text(SAMPLE)
    doc.kernel_params.add_parameter('nomodeset')
    reread = GrubDefault.from_text(doc.to_text())
    assert reread.kernel_params.serialize() == 'splash=silent resume=/dev/sda2 quiet nomodeset'


def test_last_duplicate_wins():
    doc = GrubDefault.from_text('GRUB_TIMEOUT=1\nGRUB_TIMEOUT=2\n')
    assert doc.timeout == '2'
    doc.timeout = '3'
    assert doc.to_text() == 'GRUB_TIMEOUT=1\nGRUB_TIMEOUT="3"\n'


def test_bool_settings_inverted_keys():
    doc = GrubDefault()
    doc.os_prober.disable()
    doc.recovery_entry.enable()
    doc.cryptodisk.disable()
    values = doc.to_dict()
    assert values['GRUB_DISABLE_OS_PROBER'] == 'true'
    assert values['GRUB_DISABLE_RECOVERY'] == 'false'
    assert values['GRUB_ENABLE_CRYPTODISK'] == 'n'


def test_bool_setting_tristate():
    setting = BoolSetting()
    assert not setting.defined()
    assert not setting.enabled() and not setting.disabled()
    setting.from_text('yes')
    assert setting.enabled()
    setting.value = False
    assert setting.disabled()
    setting.value = None
    assert setting.to_text() is None


def test_unknown_terminal():
    doc = GrubDefault.from_text('GRUB_TERMINAL="vga_text"\n')
    with pytest.raises(TerminalError):
        _ = doc.terminal
    assert doc.terminal_text == 'vga_text'


def test_terminal_setter():
    doc = GrubDefault()
    assert doc.terminal is None
    doc.terminal = ['serial', 'console']
    assert doc.terminal_text == 'serial console'
    assert doc.terminal == ['serial', 'console']
    doc.terminal = None
    assert 'GRUB_TERMINAL' not in doc.to_dict()


def test_empty_document_serializes_set_values_only():
    doc = GrubDefault()
    doc.timeout = '8'
    doc.kernel_params.replace('quiet')
    assert doc.to_text() == 'GRUB_CMDLINE_LINUX_DEFAULT="quiet"\nGRUB_TIMEOUT="8"\n'


def test_load_missing_file(tmp_path):
    with pytest.raises(BrokenConfigurationError, match='missing on system'):
        GrubDefault().load(str(tmp_path / 'grub'))


def test_load_save(tmp_path):
    path = tmp_path / 'grub'
    path.write_text(SAMPLE)
    doc = GrubDefault(str(path)).load()
    doc.timeout = '3'
    doc.save()
    assert GrubDefault(str(path)).load().timeout == '3'


@pytest.mark.parametrize('raw, value', [
    ('5 # comment', '5'),
    ('"has #hash" #comment', '"has #hash"'),
    ("'single # quoted'", "'single # quoted'"),
])
def test_cleanse(raw, value):
    assert cleanse(raw) == value


def test_quote_unquote():
    assert unquote('"quiet splash"') == 'quiet splash'
    assert unquote("'x'") == 'x'
    assert unquote('plain') == 'plain'
    assert quote('a b') == '"a b"'
    assert quote('say "hi"') == "'say \"hi\"'"
    assert unquote(quote('it\'s "odd"')) == 'it\'s "odd"'


def test_read_sysconfig(tmp_path):
    path = tmp_path / 'bootloader'
    path.write_text('LOADER_TYPE="grub2-efi"\nSECURE_BOOT="yes"\n')
    assert read_sysconfig(str(path)) == {'LOADER_TYPE': 'grub2-efi', 'SECURE_BOOT': 'yes'}
    with pytest.raises(FileNotFoundError):
        read_sysconfig(str(tmp_path / 'missing'))
