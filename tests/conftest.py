"""Pytest configuration and shared fixtures."""

import signal

import pytest

from restic_backup_ng.core.errors import CancelledByOperator
from restic_backup_ng.core.transaction import set_transaction_log


class FakeEngine:
    """Stands in for ResticEngine and records every step it is asked to run.

    Args:
        unlock_codes: Exit codes returned by successive unlock calls (then 0)
        backup_code: Exit code of the backup step
        forget_code: Exit code of the prune step
        on_backup: Called with the cancel token while the backup "runs"
    """

    def __init__(
        self, unlock_codes=None, backup_code=0, forget_code=0, on_backup=None
    ):
        self.calls = []
        self.unlock_timeouts = []
        self.backup_args = None
        self.forget_args = None
        self.unlock_codes = list(unlock_codes or [])
        self.backup_code = backup_code
        self.forget_code = forget_code
        self.on_backup = on_backup

    def unlock(self, token=None, timeout=None):
        self.calls.append("unlock")
        self.unlock_timeouts.append(timeout)
        if self.unlock_codes:
            return self.unlock_codes.pop(0)
        return 0

    def backup(self, paths, excludes, tag, connections, token=None):
        self.calls.append("backup")
        self.backup_args = (list(paths), list(excludes), tag, connections)
        if self.on_backup is not None:
            self.on_backup(token)
        return self.backup_code

    def forget(self, tag, policy, connections, token=None):
        self.calls.append("prune")
        self.forget_args = (tag, policy, connections)
        return self.forget_code


def cancel_mid_backup(token):
    """on_backup hook: a SIGTERM arrives and the child is terminated."""
    token.cancel(signal.SIGTERM)
    raise CancelledByOperator("backup", signal.SIGTERM)


@pytest.fixture
def fake_engine():
    """A FakeEngine where every step succeeds."""
    return FakeEngine()


@pytest.fixture
def make_engine():
    """Factory for FakeEngines with custom exit codes."""
    return FakeEngine


@pytest.fixture
def cancelling_engine():
    """A FakeEngine whose backup step gets cancelled by SIGTERM."""
    return FakeEngine(on_backup=cancel_mid_backup)


@pytest.fixture(autouse=True)
def reset_transaction_log():
    """Never leak an enabled transaction log between tests."""
    yield
    set_transaction_log(None)


@pytest.fixture
def backup_tree(tmp_path):
    """Create a server-like layout of sites, mounts and homes.

    Returns a dict of the relevant paths.
    """
    www = tmp_path / "srv" / "www"
    for site in ("alpha.example", "beta.example"):
        (www / site).mkdir(parents=True)
    (www / "README").write_text("not a site\n")

    mnt = tmp_path / "mnt"
    (mnt / "data").mkdir(parents=True)

    home = tmp_path / "home"
    (home / "alice").mkdir(parents=True)
    (home / "bob").mkdir(parents=True)
    (home / "alice" / ".backup_exclude").write_text("*.iso\n")

    etc = tmp_path / "etc"
    etc.mkdir()
    global_exclude = etc / "backup_exclude"
    global_exclude.write_text("/proc\n")

    return {
        "root": tmp_path,
        "www": www,
        "mnt": mnt,
        "home": home,
        "global_exclude": global_exclude,
    }


@pytest.fixture
def tmp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_toml():
    """Return a sample valid TOML configuration string."""
    return """
[global]
log_file = "/var/log/restic-backup-ng.log"

[repository]
env_file = "/etc/restic/b2_env.sh"
restic_binary = "/usr/local/bin/restic"
cache_dir = "/var/cache/restic"
connections = 20
connections_option = "s3.connections"

[sources]
roots = ["/srv/www/*", "/mnt/*/"]
global_exclude_file = "/etc/restic/backup_exclude"
home_glob = "/home/*"
user_exclude_filename = ".restic_exclude"

[retention]
daily = 14
weekly = 4
monthly = 6
yearly = 2

[tags]
interactive = "manual"
scheduled = "timer"
"""


@pytest.fixture
def minimal_config_toml():
    """Return a minimal valid TOML configuration string."""
    return """
[sources]
roots = ["/srv/www/*"]
"""


@pytest.fixture
def config_file(tmp_config_dir, sample_config_toml):
    """Create a temporary config file with sample content."""
    config_path = tmp_config_dir / "config.toml"
    config_path.write_text(sample_config_toml)
    return config_path


@pytest.fixture
def minimal_config_file(tmp_config_dir, minimal_config_toml):
    """Create a temporary config file with minimal content."""
    config_path = tmp_config_dir / "minimal.toml"
    config_path.write_text(minimal_config_toml)
    return config_path


@pytest.fixture
def tree_config_file(tmp_config_dir, backup_tree):
    """Config pointing every source setting into ``backup_tree``."""
    config_path = tmp_config_dir / "tree.toml"
    config_path.write_text(f"""
[repository]
env_file = ""
cache_dir = ""

[sources]
roots = ["{backup_tree['www']}/*", "{backup_tree['mnt']}/*/"]
global_exclude_file = "{backup_tree['global_exclude']}"
home_glob = "{backup_tree['home']}/*"

[retention]
daily = 7
weekly = 8
monthly = 1
yearly = 1
""")
    return config_path
