"""Tests for the command line entry point"""
import ipaddress
import logging
import logging.handlers
import signal

import pytest

import aaaasync
from aaaasync import main


CONFIG = """[aaaasync]
api_token = abc123
logdir = stderr

[domain.home]
zone_id = zone1
base_name = example.com
names = www

[domain.lab]
zone_id = zone2
base_name = example.org
names = nas
iface = eth1
"""


@pytest.fixture(autouse=True)
def restore_logger():
    """Fixture undoing main's changes to the aaaasync logger"""
    log = logging.getLogger('aaaasync')
    handlers = list(log.handlers)
    level = log.level
    yield
    for handler in list(log.handlers):
        if handler not in handlers:
            log.removeHandler(handler)
            handler.close()
    log.setLevel(level)


@pytest.fixture
def configfile(tmp_path):
    path = tmp_path / 'aaaasync.conf'
    path.write_text(CONFIG)
    return path


@pytest.fixture
def manager_mock(mocker):
    return mocker.patch('aaaasync.manager.SyncManager')


def run_main(*argv):
    with pytest.raises(SystemExit) as excinfo:
        main.main(list(argv))
    return excinfo.value.code


def test_parse_args_defaults():
    """Test the default arguments"""
    args = main.parse_args([])

    assert args.configfile == '/etc/aaaasync.conf'
    assert args.env is None
    assert not args.debug_logs
    assert not args.stderr
    assert not args.once


def test_parse_args_modes_exclusive(capsys):
    """Test that only one mode can be selected"""
    with pytest.raises(SystemExit):
        main.parse_args(['--once', '--list-zones'])


def test_config_error(tmp_path, capsys, manager_mock):
    """Test that an unreadable config exits with status 2"""
    assert run_main('-c', str(tmp_path / 'missing.conf')) == 2
    assert "Config error" in capsys.readouterr().err
    manager_mock.assert_not_called()


def test_once(configfile, manager_mock):
    """Test a single update"""
    assert run_main('-c', str(configfile), '--once') == 0
    manager_mock.return_value.update_once.assert_called_once_with()
    manager_mock.return_value.start.assert_not_called()


def test_once_failure(configfile, manager_mock):
    """Test that a failed single update exits with status 1"""
    manager_mock.return_value.update_once.side_effect = \
        aaaasync.DirectoryUnavailable("down")

    assert run_main('-c', str(configfile), '--once') == 1


def test_setup_error(configfile, manager_mock):
    """Test that a setup failure exits with status 1"""
    manager_mock.side_effect = aaaasync.ConfigError("bad")

    assert run_main('-c', str(configfile), '--once') == 1


def test_env_override(configfile, tmp_path, manager_mock):
    """Test that --env selects an override file"""
    (tmp_path / 'aaaasync.test.conf').write_text("[aaaasync]\n"
                                                 "interval = 7\n")

    run_main('-c', str(configfile), '-e', 'test', '--once')

    conf = manager_mock.call_args.args[0]
    assert conf.interval == 7


def test_scheduled(mocker, configfile, manager_mock):
    """Test that the scheduled mode starts the manager and wires up the
    signals"""
    signal_mock = mocker.patch('aaaasync.main.signal.signal')

    main.main(['-c', str(configfile), '-d'])

    sync_manager = manager_mock.return_value
    sync_manager.start.assert_called_once_with()
    assert logging.getLogger('aaaasync').level == logging.DEBUG

    handlers = {c.args[0]: c.args[1] for c in signal_mock.call_args_list}
    assert set(handlers) == {signal.SIGUSR1, signal.SIGINT, signal.SIGTERM}
    handlers[signal.SIGUSR1](signal.SIGUSR1, None)
    sync_manager.do_update.assert_called_once_with()
    handlers[signal.SIGTERM](signal.SIGTERM, None)
    sync_manager.stop.assert_called_once_with()


def test_list_zones(mocker, configfile, capsys):
    """Test printing the zones"""
    client_cls = mocker.patch('aaaasync.main.CloudflareClient')
    client_cls.return_value.list_zones.return_value = [
        ('example.com', 'zone1'), ('example.org', 'zone2'),
    ]

    assert run_main('-c', str(configfile), '--list-zones') == 0
    assert capsys.readouterr().out == ("example.com\tzone1\n"
                                       "example.org\tzone2\n")
    client_cls.assert_called_once_with(
        "abc123", aaaasync.configuration.DEFAULT_ENDPOINT, 10.0)


def test_list_zones_error(mocker, configfile, capsys):
    """Test that a failed zone listing exits with status 1"""
    client_cls = mocker.patch('aaaasync.main.CloudflareClient')
    client_cls.return_value.list_zones.side_effect = \
        aaaasync.DirectoryUnavailable("down")

    assert run_main('-c', str(configfile), '--list-zones') == 1
    assert "down" in capsys.readouterr().err


def test_show_addresses(mocker, configfile, capsys):
    """Test printing the addresses for each domain"""
    source = mocker.patch('aaaasync.main.AddressSource').return_value
    source.addresses_for.side_effect = lambda iface: (
        aaaasync.ResolvedAddress((ipaddress.IPv6Address('2001:db8::1'),
                                  ipaddress.IPv6Address('2001:db8::2')))
        if iface is None else None
    )

    assert run_main('-c', str(configfile), '--show-addresses') == 1
    assert capsys.readouterr().out == (
        "home (any interface): 2001:db8::1 (also found: 2001:db8::2)\n"
        "lab (eth1): no qualifying IPv6 address\n"
    )


def test_log_handler_stderr():
    """Test the stderr log handler and its timestamp format"""
    handler = main.make_log_handler('stderr')
    record = logging.LogRecord('aaaasync', logging.INFO, __file__, 1,
                               "hello %s", ('world',), None)
    record.created = 0.0
    record.msecs = 0.0

    assert isinstance(handler, logging.StreamHandler)
    assert handler.format(record) == "[1970-01-01T00:00:00.000Z] hello world"


def test_log_handler_file(tmp_path):
    """Test that a log directory is created and logged into"""
    logdir = tmp_path / 'logs'

    handler = main.make_log_handler(str(logdir))
    try:
        assert isinstance(handler,
                          logging.handlers.TimedRotatingFileHandler)
        assert (logdir / main.LOGFILE_NAME).exists()
    finally:
        handler.close()


def test_log_handler_syslog(mocker):
    """Test the syslog log handler"""
    syslog_cls = mocker.patch('logging.handlers.SysLogHandler')

    assert main.make_log_handler('syslog') is syslog_cls.return_value


def test_unwritable_logdir(mocker, configfile, manager_mock, capsys):
    """Test that an unusable log directory exits with status 2"""
    mocker.patch('aaaasync.main.make_log_handler',
                 side_effect=PermissionError(13, "Permission denied"))

    assert run_main('-c', str(configfile), '--once') == 2
    manager_mock.assert_not_called()
