import dataclasses

import pytest

from config import DEFAULT_RENDER_SERVICE, ConfigError, Settings, load_settings


def write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_settings(tmp_path):
    path = write(tmp_path, (
        'chem_name_lookup_service: "https://lookup.example/$name/smiles"\n'
        'molecule_render_service: "http://render.example/m/$smiles"\n'
        "verify_ssl: true\n"
        "site_title: Molecules\n"
    ))
    settings = load_settings(path)

    assert settings.chem_name_lookup_service == "https://lookup.example/$name/smiles"
    assert settings.molecule_render_service == "http://render.example/m/$smiles"
    assert settings.verify_ssl is True
    assert settings.debug is False
    assert settings.context["site_title"] == "Molecules"


def test_defaults(tmp_path):
    settings = load_settings(write(tmp_path, 'chem_name_lookup_service: "http://x/$name"\n'))
    assert settings.molecule_render_service == DEFAULT_RENDER_SERVICE
    assert settings.verify_ssl is False


def test_settings_are_read_only(tmp_path):
    settings = load_settings(write(tmp_path, 'chem_name_lookup_service: "http://x/$name"\n'))
    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.debug = True
    with pytest.raises(TypeError):
        settings.context["site_title"] = "changed"


@pytest.mark.parametrize("text", [
    "verify_ssl: false\n",
    'chem_name_lookup_service: "http://x/no-token"\n',
    'chem_name_lookup_service: "http://x/$name"\nmolecule_render_service: "http://r/"\n',
    "- just\n- a list\n",
    "chem_name_lookup_service: [unclosed\n",
    "",
])
def test_bad_config(tmp_path, text):
    with pytest.raises(ConfigError):
        load_settings(write(tmp_path, text))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Cannot read"):
        load_settings(tmp_path / "nope.yaml")


def test_shipped_config_loads():
    settings = load_settings()
    assert isinstance(settings, Settings)
    assert "$name" in settings.chem_name_lookup_service
    assert "$smiles" in settings.molecule_render_service
