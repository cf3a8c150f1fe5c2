from fpcp.config import Settings
from fpcp.db.database import timeout_connect_args


class TestTimeoutConnectArgs:
    def test_sqlite_uses_busy_timeout(self):
        assert timeout_connect_args("sqlite:///./data/fpcp.db", 7) == {"timeout": 7}

    def test_aiosqlite_uses_busy_timeout(self):
        assert timeout_connect_args("sqlite+aiosqlite:///:memory:", 5) == {"timeout": 5}

    def test_postgres_bounds_connect_and_statements(self):
        args = timeout_connect_args("postgresql+psycopg2://u:p@db/fpcp", 10)
        assert args == {
            "connect_timeout": 10,
            "options": "-c statement_timeout=10000",
        }

    def test_asyncpg(self):
        args = timeout_connect_args("postgresql+asyncpg://u:p@db/fpcp", 3)
        assert args == {"timeout": 3, "command_timeout": 3}

    def test_unknown_backend_gets_no_args(self):
        assert timeout_connect_args("mysql+pymysql://u:p@db/fpcp", 10) == {}


def test_default_db_timeout_setting():
    assert Settings(_env_file=None).db_timeout_seconds == 10
