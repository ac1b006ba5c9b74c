import io

import pytest

import dynip
from dynip import ConfigError
from dynip.manager import validate_destination_type


def _read(text):
    return dynip.read_config(io.StringIO(text))


BASIC = """\
[dynip]
iface = eth0

[destination.cf]
type = cloudflare
api_token = tok
zones = example.ch:dynip

[destination.hosts]
type = file
template = /tmp/hosts.tmpl
output = /tmp/hosts
"""


def test_sections_split():
    config = _read(BASIC)
    assert config.main == {'iface': 'eth0'}
    assert list(config.destinations) == ['cf', 'hosts']
    assert config.destinations['cf']['zones'] == 'example.ch:dynip'


def test_defaults_filled():
    config = _read(BASIC)
    config.validate(validate_destination_type)
    assert config.interval == 5
    assert config.main['state'] == 'memory'
    assert config.logfile == 'syslog'
    assert config.log_level == 'info'


def test_validate_idempotent():
    config = _read(BASIC)
    config.validate(validate_destination_type)
    config.main['interval'] = 'garbage'
    config.validate(validate_destination_type)


def test_logfile_setter():
    config = _read(BASIC)
    config.validate(validate_destination_type)
    config.logfile = 'stderr'
    assert config.main['logfile'] == 'stderr'


def test_unknown_section():
    with pytest.raises(ConfigError):
        _read(BASIC + "\n[notifier.x]\ntype = iface\n")


def test_unnamed_destination():
    with pytest.raises(ConfigError):
        _read(BASIC + "\n[destination.]\ntype = file\n")


def test_syntax_error():
    with pytest.raises(ConfigError):
        _read("iface = eth0\n")


def test_duplicate_section():
    with pytest.raises(ConfigError):
        _read(BASIC + "\n[dynip]\ninterval = 1\n")


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        dynip.read_config_from_path(tmp_path / 'missing.conf')


def test_read_from_path(tmp_path):
    path = tmp_path / 'dynip.conf'
    path.write_text(BASIC)
    config = dynip.read_config_from_path(path)
    assert config.main['iface'] == 'eth0'


@pytest.mark.parametrize('main', [
    "",
    "external = maybe",
    "external = false",
    "iface = eth0\ninterval = 0",
    "iface = eth0\ninterval = -1",
    "iface = eth0\ninterval = 2.5",
    "iface = eth0\nstate = redis",
    "iface = eth0\nstate = file",
    "iface = eth0\nlog_level = loud",
])
def test_invalid_main(main):
    config = _read(f"[dynip]\n{main}\n\n[destination.f]\ntype = file\n")
    with pytest.raises(ConfigError):
        config.validate(validate_destination_type)


@pytest.mark.parametrize('main', [
    "external = true",
    "iface = eth0\nstate = file\nstate_path = /var/lib/dynip/state.json",
    "iface = eth0\ninterval = 1\nlog_level = DEBUG",
])
def test_valid_main(main):
    config = _read(f"[dynip]\n{main}\n\n[destination.f]\ntype = file\n")
    config.validate(validate_destination_type)


def test_no_destinations():
    config = _read("[dynip]\niface = eth0\n")
    with pytest.raises(ConfigError):
        config.validate(validate_destination_type)


def test_destination_without_type():
    config = _read("[dynip]\niface = eth0\n\n[destination.x]\nzones = a\n")
    with pytest.raises(ConfigError):
        config.validate(validate_destination_type)


def test_destination_unknown_type():
    config = _read("[dynip]\niface = eth0\n\n[destination.x]\ntype = gandi\n")
    with pytest.raises(ConfigError):
        config.validate(validate_destination_type)


def test_str():
    config = _read(BASIC)
    config.validate(validate_destination_type)
    text = str(config)
    assert "iface 'eth0'" in text
    assert "cf (cloudflare)" in text
    assert "hosts (file)" in text
