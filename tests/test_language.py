from grub_conf.Language import systemwide_locale


def test_rc_lang(tmp_path):
    path = tmp_path / 'language'
    path.write_text('RC_LANG="cs_CZ.UTF-8"\nROOT_USES_LANG="ctype"\n')
    assert systemwide_locale(str(path)) == {
        'LC_MESSAGES': None, 'LC_ALL': None, 'LANGUAGE': None, 'LANG': 'cs_CZ.UTF-8'}


def test_empty_rc_lang_is_c(tmp_path):
    path = tmp_path / 'language'
    path.write_text('RC_LANG=""\n')
    assert systemwide_locale(str(path))['LANG'] == 'C'


def test_missing_file(tmp_path):
    assert systemwide_locale(str(tmp_path / 'language')) == {}
