"""Tests for the env-file backed ERP token store."""

from app.services.erp.token_store import TOKEN_KEY, TokenStore


class TestTokenStore:
    def test_missing_file_returns_none(self, tmp_path):
        store = TokenStore(tmp_path / ".env")
        assert store.get() is None

    def test_set_writes_single_env_line(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("DATABASE_URL=sqlite://\n")
        store = TokenStore(path)

        store.set("abc123")

        content = path.read_text()
        assert f"{TOKEN_KEY}=abc123" in content
        assert "DATABASE_URL=sqlite://" in content

    def test_token_survives_new_instance(self, tmp_path):
        path = tmp_path / ".env"
        TokenStore(path).set("persisted")
        assert TokenStore(path).get() == "persisted"

    def test_set_replaces_previous_token(self, tmp_path):
        path = tmp_path / ".env"
        store = TokenStore(path)
        store.set("first")
        store.set("second")
        assert store.get() == "second"
        assert path.read_text().count(f"{TOKEN_KEY}=") == 1

    def test_blank_token_is_not_stored(self, tmp_path):
        path = tmp_path / ".env"
        store = TokenStore(path)
        store.set("   ")
        assert store.get() is None
        assert not path.exists()

    def test_blank_value_on_disk_reads_as_none(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text(f"{TOKEN_KEY}=\n")
        assert TokenStore(path).get() is None

    def test_clear_removes_line_and_memory(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("OTHER=1\n")
        store = TokenStore(path)
        store.set("abc123")

        store.clear()

        assert store.get() is None
        content = path.read_text()
        assert TOKEN_KEY not in content
        assert "OTHER=1" in content

    def test_clear_without_file_is_noop(self, tmp_path):
        store = TokenStore(tmp_path / "missing" / ".env")
        store.clear()
        assert store.get() is None

    def test_write_failure_keeps_memory_copy(self, tmp_path):
        # A directory cannot be written as a file
        store = TokenStore(tmp_path)
        store.set("in-memory")
        assert store.get() == "in-memory"

    def test_custom_key(self, tmp_path):
        path = tmp_path / ".env"
        store = TokenStore(path, key="OTHER_TOKEN")
        store.set("xyz")
        assert "OTHER_TOKEN=xyz" in path.read_text()
        assert TokenStore(path).get() is None
