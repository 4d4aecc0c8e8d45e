import pytest

from tncbridge.cli import main


def test_no_arguments_is_usage_error(capsys):
    assert main([]) == 1
    err = capsys.readouterr().err
    assert "Too few arguments" in err
    assert "usage:" in err


def test_kiss_over_tcp_requires_host_and_port(capsys):
    assert main(["-T"]) == 1
    err = capsys.readouterr().err
    assert "no host was specified" in err
    assert "no port was specified" in err


def test_kiss_over_tcp_requires_port(capsys):
    assert main(["-T", "-H", "localhost"]) == 1
    err = capsys.readouterr().err
    assert "no port was specified" in err
    assert "no host was specified" not in err


def test_interval_without_identity(capsys):
    assert main(["/dev/ttyUSB0", "115200", "-t", "600"]) == 1
    assert "identification data" in capsys.readouterr().err


def test_identity_without_interval(capsys):
    assert main(["/dev/ttyUSB0", "115200", "-s", "N0CALL"]) == 1
    assert "interval" in capsys.readouterr().err


def test_invalid_mtu(capsys):
    assert main(["-m", "10", "/dev/ttyUSB0", "115200"]) == 1
    assert "Invalid MTU specified" in capsys.readouterr().err


def test_noipv6_conflicts_with_ipv6(capsys):
    assert main(["-6", "fd00::1/64", "-n", "/dev/ttyUSB0", "115200"]) == 1
    assert "Requested no IPv6" in capsys.readouterr().err


def test_version_exits_cleanly(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--version"])
    assert info.value.code == 0
    assert "0.1.9" in capsys.readouterr().out


def test_help_describes_program(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--help"])
    assert info.value.code == 0
    assert "Attach TNC devices as system network interfaces" in capsys.readouterr().out