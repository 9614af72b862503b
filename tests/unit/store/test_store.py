"""
Tests for the Store: persistence, checkout discipline and transactions.
"""
import threading
import pytest

from commonplace.core.config import StoreConfig
from commonplace.core.exceptions import (
    AlreadyExistsError,
    IOFailureError,
    LockedError,
    MalformedError,
    NotFoundError,
)
from commonplace.store import manager
from commonplace.store.identifier import Identifier
from commonplace.store.manager import Store


class TestOpen:
    """Tests for opening a store root."""

    def test_missing_root(self, tmp_dir):
        with pytest.raises(NotFoundError, match="implicit-create"):
            Store(tmp_dir / "absent")

    def test_implicit_create(self, tmp_dir):
        store = Store(tmp_dir / "absent", config=StoreConfig(implicit_create=True))
        assert store.root.is_dir()

    def test_root_is_a_file(self, tmp_dir):
        (tmp_dir / "file").write_text("", encoding="utf-8")
        with pytest.raises(IOFailureError):
            Store(tmp_dir / "file")

    def test_open_reads_config(self, tmp_dir):
        config_path = tmp_dir / "config.yaml"
        config_path.write_text(
            f"store:\n  implicit-create: true\nlogging:\n  dir: {tmp_dir / 'logs'}\n",
            encoding="utf-8",
        )
        store = Store.open(root=tmp_dir / "store", config_path=config_path)
        try:
            assert store.root.is_dir()
            assert store.logger is not None
            assert (tmp_dir / "logs" / "store.log").exists()
        finally:
            store.logger.close()


class TestCreateRetrieve:
    """Tests for create / retrieve / get."""

    def test_create_then_retrieve(self, store):
        entry = store.create("diary/2024-01-01")
        assert entry.is_new
        assert not store.exists("diary/2024-01-01")
        assert store.release(entry) is True

        loaded = store.retrieve("diary/2024-01-01")
        assert loaded.header.version == "1.0.0"
        assert loaded.content == ""
        store.release(loaded)

    def test_create_existing(self, store):
        store.release(store.create("contact/alice"))
        with pytest.raises(AlreadyExistsError):
            store.create("contact/alice")
        assert not store.is_checked_out("contact/alice")

    def test_retrieve_missing(self, store):
        with pytest.raises(NotFoundError):
            store.retrieve("contact/nobody")
        assert not store.is_checked_out("contact/nobody")

    def test_get_missing_returns_none(self, store):
        assert store.get("contact/nobody") is None

    def test_get_existing(self, store):
        store.release(store.create("contact/alice"))
        entry = store.get("contact/alice")
        assert entry is not None
        store.discard(entry)

    def test_invalid_identifier(self, store):
        with pytest.raises(MalformedError):
            store.create("../escape")

    def test_file_layout(self, store, store_root):
        with store.checkout("diary/2024-01-01", create=True) as entry:
            entry.content = "woke up at 7"
        text = (store_root / "diary" / "2024-01-01.md").read_text(encoding="utf-8")
        assert text == "---\ncommonplace:\n  version: 1.0.0\n---\n\nwoke up at 7"

    def test_malformed_file_frees_checkout(self, store, write_entry):
        write_entry("diary/bad", "no header here\n")
        for _ in range(2):
            with pytest.raises(MalformedError):
                store.retrieve("diary/bad")

    def test_non_utf8_file(self, store, store_root):
        (store_root / "diary").mkdir()
        (store_root / "diary" / "bin.md").write_bytes(b"---\n\xff\xfe\n---\n")
        with pytest.raises(MalformedError, match="UTF-8"):
            store.retrieve("diary/bin")


class TestCheckoutDiscipline:
    """One live handle per identifier."""

    def test_retrieve_while_checked_out(self, store):
        store.release(store.create("contact/alice"))
        first = store.retrieve("contact/alice")
        with pytest.raises(LockedError):
            store.retrieve("contact/alice")
        store.release(first)
        store.release(store.retrieve("contact/alice"))

    def test_create_while_checked_out(self, store):
        store.create("contact/alice")
        with pytest.raises(LockedError):
            store.create("contact/alice")

    def test_release_twice(self, store):
        entry = store.create("contact/alice")
        store.release(entry)
        with pytest.raises(LockedError):
            store.release(entry)

    def test_release_writes_only_when_dirty(self, store, store_root, write_entry):
        path = write_entry("diary/x", "---\ncommonplace: {version: 1.0.0}\n---\n\nbody")
        entry = store.retrieve("diary/x")
        assert store.release(entry) is False
        assert path.read_text(encoding="utf-8").startswith("---\ncommonplace: {")

    def test_update_keeps_checkout(self, store):
        entry = store.create("contact/alice")
        assert store.update(entry) is True
        assert store.exists("contact/alice")
        assert store.is_checked_out("contact/alice")
        assert store.update(entry) is False
        store.release(entry)

    def test_discard_does_not_write(self, store):
        entry = store.create("contact/alice")
        store.discard(entry)
        assert not store.exists("contact/alice")
        assert not store.is_checked_out("contact/alice")

    def test_checkout_context_releases(self, store):
        with store.checkout("contact/alice", create=True) as entry:
            entry.header.set("contact.name", "Alice")
        assert not store.is_checked_out("contact/alice")
        with store.checkout("contact/alice") as entry:
            assert entry.header.get_str("contact.name") == "Alice"

    def test_checkout_context_discards_on_error(self, store):
        store.release(store.create("contact/alice"))
        with pytest.raises(RuntimeError):
            with store.checkout("contact/alice") as entry:
                entry.content = "changed"
                raise RuntimeError("caller failed")
        assert not store.is_checked_out("contact/alice")
        with store.checkout("contact/alice") as entry:
            assert entry.content == ""

    def test_checked_out_listing(self, store):
        store.create("diary/b")
        store.create("diary/a")
        assert store.checked_out() == [
            Identifier.parse("diary/a"),
            Identifier.parse("diary/b"),
        ]

    def test_threads_race_on_retrieve(self, store):
        """Exactly one racing thread obtains the handle; the rest get Locked."""
        store.release(store.create("contact/alice"))
        barrier = threading.Barrier(6)
        outcomes = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            try:
                store.retrieve("contact/alice")
                outcome = "won"
            except LockedError:
                outcome = "locked"
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("won") == 1
        assert outcomes.count("locked") == 5


class TestDelete:
    """Tests for delete."""

    def test_delete_by_identifier(self, store, store_root):
        store.release(store.create("contact/alice"))
        store.delete("contact/alice")
        assert not store.exists("contact/alice")
        assert not (store_root / "contact").exists()

    def test_delete_missing(self, store):
        with pytest.raises(NotFoundError):
            store.delete("contact/nobody")

    def test_delete_while_checked_out(self, store):
        store.release(store.create("contact/alice"))
        entry = store.retrieve("contact/alice")
        with pytest.raises(LockedError):
            store.delete("contact/alice")
        assert store.exists("contact/alice")
        store.release(entry)

    def test_delete_own_handle(self, store):
        store.release(store.create("contact/alice"))
        entry = store.retrieve("contact/alice")
        store.delete(entry)
        assert not store.exists("contact/alice")
        assert not store.is_checked_out("contact/alice")

    def test_delete_unwritten_new_handle(self, store):
        entry = store.create("contact/alice")
        store.delete(entry)
        assert not store.is_checked_out("contact/alice")


class TestIds:
    """Tests for lazy identifier enumeration."""

    def test_sorted_and_filtered(self, store):
        for name in ["diary/2024-01-02", "contact/alice", "diary/2024-01-01"]:
            store.release(store.create(name))

        assert [str(i) for i in store.ids()] == [
            "contact/alice",
            "diary/2024-01-01",
            "diary/2024-01-02",
        ]
        assert [str(i) for i in store.ids("diary")] == ["diary/2024-01-01", "diary/2024-01-02"]

    def test_restartable(self, store):
        sequence = store.ids()
        assert list(sequence) == []
        store.release(store.create("contact/alice"))
        assert list(sequence) == [Identifier.parse("contact/alice")]

    def test_skips_unaddressable_and_temporary_files(self, store, store_root):
        store.release(store.create("contact/alice"))
        (store_root / "loose.md").write_text("", encoding="utf-8")
        (store_root / "contact" / ".alice.md.abc.tmp").write_text("", encoding="utf-8")
        (store_root / "contact" / "notes.txt").write_text("", encoding="utf-8")
        assert list(store.ids()) == [Identifier.parse("contact/alice")]

    def test_invalid_collection(self, store):
        with pytest.raises(MalformedError):
            store.ids("../outside")

    def test_missing_collection(self, store):
        assert list(store.ids("bookmark")) == []


class TestTransaction:
    """Tests for multi-entry transactions."""

    @pytest.fixture
    def pair(self, store):
        with store.checkout("diary/a", create=True) as entry:
            entry.content = "original a"
        with store.checkout("contact/b", create=True) as entry:
            entry.content = "original b"
        return store

    def test_commits_all(self, pair):
        with pair.transaction("diary/a", "contact/b") as (a, b):
            a.content = "new a"
            b.content = "new b"
        assert not pair.checked_out()
        with pair.transaction("diary/a", "contact/b") as (a, b):
            assert (a.content, b.content) == ("new a", "new b")

    def test_acquire_failure_frees_taken(self, pair):
        held = pair.retrieve("contact/b")
        with pytest.raises(LockedError):
            with pair.transaction("diary/a", "contact/b"):
                pass
        assert pair.checked_out() == [Identifier.parse("contact/b")]
        pair.release(held)

    def test_missing_member(self, pair):
        with pytest.raises(NotFoundError):
            with pair.transaction("diary/a", "contact/nobody"):
                pass
        assert not pair.checked_out()

    def test_error_in_block_writes_nothing(self, pair):
        with pytest.raises(RuntimeError):
            with pair.transaction("diary/a", "contact/b") as (a, b):
                a.content = "new a"
                raise RuntimeError("abort")
        with pair.checkout("diary/a") as a:
            assert a.content == "original a"
        assert not pair.checked_out()

    def test_failed_second_write_restores_first(self, pair, store_root, monkeypatch):
        first_path = store_root / "diary" / "a.md"
        before = first_path.read_text(encoding="utf-8")
        real_write = manager.atomic_write_text

        def flaky_write(path, text):
            if path.name == "b.md":
                raise OSError("disk full")
            real_write(path, text)

        monkeypatch.setattr(manager, "atomic_write_text", flaky_write)

        with pytest.raises(IOFailureError, match="disk full"):
            with pair.transaction("diary/a", "contact/b") as (a, b):
                a.content = "new a"
                b.content = "new b"

        assert first_path.read_text(encoding="utf-8") == before
        assert "original b" in (store_root / "contact" / "b.md").read_text(encoding="utf-8")
        assert not pair.checked_out()


class TestLogging:
    """Store operations are logged when a logger is configured."""

    def test_operations_logged(self, logged_store, tmp_dir):
        with logged_store.checkout("diary/x", create=True) as entry:
            entry.content = "x"
        logged_store.delete("diary/x")

        text = (tmp_dir / "logs" / "test.log").read_text(encoding="utf-8")
        assert "entry_created" in text
        assert "entry_written" in text
        assert "entry_deleted" in text


# Valid identifier (each segment fits a file name) whose full path exceeds PATH_MAX
OVERLONG = "/".join(["n" * 250] * 20)


class TestOverlongPaths:
    """Filesystem limits surface as IOFailureError, never a bare OSError."""

    def test_get(self, store):
        with pytest.raises(IOFailureError):
            store.get(OVERLONG)

    def test_exists(self, store):
        with pytest.raises(IOFailureError):
            store.exists(OVERLONG)

    def test_retrieve(self, store):
        with pytest.raises(IOFailureError):
            store.retrieve(OVERLONG)
        assert not store.checked_out()

    def test_create_frees_checkout(self, store):
        with pytest.raises(IOFailureError):
            store.create(OVERLONG)
        assert not store.checked_out()


class TestRoundTrip:
    """Content and header values come back exactly as stored."""

    @pytest.mark.parametrize(
        "body",
        [
            "",
            "woke up at 7",
            "line one\r\nline two\rthree",
            "\r\nstarts with crlf",
            "\n\nleading blank lines",
            "trailing blank lines\n\n",
            "above\n---\nbelow\n",
            "---\n",
            "Took the train to Montréal ☕ 日本語\n",
        ],
    )
    def test_body(self, store, store_root, body):
        with store.checkout("notes/body", create=True) as entry:
            entry.content = body

        with store.checkout("notes/body") as entry:
            assert entry.content == body
            assert not entry.is_dirty
        assert (store_root / "notes" / "body.md").read_bytes().endswith(body.encode("utf-8"))

    @pytest.mark.parametrize(
        "value",
        [
            "plain",
            "first\n---\nsecond",
            "line\r\nbreak",
            "2024-01-01",
            "yes",
            "1.0",
            "",
            "Montréal",
            None,
            True,
            0,
            -12345678901234567890,
            4.5,
            1e-12,
            [],
            {},
            [1, "two", [3.0, None], {"four": False}],
            {"nested": {"deeper": ["x", {"y": "z"}]}},
        ],
    )
    def test_header_value(self, store, value):
        with store.checkout("notes/header", create=True) as entry:
            entry.header.set("diary.value", value)
            entry.content = "body"

        with store.checkout("notes/header") as entry:
            stored = entry.header.read("diary.value", default="<missing>")
            assert stored == value
            assert type(stored) is type(value)
            assert entry.content == "body"

    def test_crlf_framed_file(self, store, write_entry):
        text = "---\r\ncommonplace:\r\n  version: 1.0.0\r\ndiary:\r\n  mood: rested\r\n---\r\n\r\nbody\r\n"
        path = write_entry("diary/crlf", "")
        path.write_bytes(text.encode("utf-8"))

        with store.checkout("diary/crlf") as entry:
            assert entry.header.get_str("diary.mood") == "rested"
            assert entry.content == "body\r\n"
            assert not entry.is_dirty
        assert path.read_bytes() == text.encode("utf-8")

    def test_failed_transaction_restores_exact_bytes(self, store, write_entry, monkeypatch):
        raw = b"---\r\ncommonplace:\r\n  version: 1.0.0\r\n---\r\n\r\nline one\r\nline two\r"
        first = write_entry("diary/a", "")
        first.write_bytes(raw)
        with store.checkout("contact/b", create=True) as entry:
            entry.content = "b"

        real_write = manager.atomic_write_text

        def flaky_write(path, text):
            if path.name == "b.md":
                raise OSError("disk full")
            real_write(path, text)

        monkeypatch.setattr(manager, "atomic_write_text", flaky_write)

        with pytest.raises(IOFailureError):
            with store.transaction("diary/a", "contact/b") as (a, b):
                a.content = "changed"
                b.content = "changed"

        assert first.read_bytes() == raw


class TestHeaderGuard:
    """The store never writes a header it could not load back."""

    def test_reserved_namespace_removed_in_place(self, store, store_root):
        with store.checkout("notes/v", create=True) as entry:
            entry.content = "kept"
        path = store_root / "notes" / "v.md"
        before = path.read_bytes()

        with pytest.raises(MalformedError, match="notes/v"):
            with store.checkout("notes/v") as entry:
                del entry.header.namespace("commonplace")["version"]

        assert path.read_bytes() == before
        assert not store.checked_out()
        with store.checkout("notes/v") as entry:
            assert entry.content == "kept"

    def test_new_entry_with_incompatible_version(self, store, store_root):
        entry = store.create("notes/new")
        entry.header.namespace("commonplace")["version"] = "2.0.0"
        with pytest.raises(MalformedError):
            store.release(entry)
        assert not (store_root / "notes" / "new.md").exists()
        assert not store.checked_out()

    def test_unsupported_value_added_in_place(self, store, store_root):
        with pytest.raises(MalformedError, match="notes/set"):
            with store.checkout("notes/set", create=True) as entry:
                entry.header.namespace("diary")["when"] = {1, 2}
        assert not (store_root / "notes" / "set.md").exists()
        assert not store.checked_out()

    def test_set_reserved_namespace_rejected(self, store):
        with store.checkout("notes/v", create=True) as entry:
            with pytest.raises(MalformedError):
                entry.header.set("commonplace", {"links": []})
        with store.checkout("notes/v") as entry:
            assert entry.header.version == "1.0.0"


class TestOpenLogging:
    """File logging is opt-in."""

    def test_no_log_dir_means_no_logger(self, tmp_dir, store_root):
        store = Store.open(root=store_root, config_path=tmp_dir / "missing.yaml")
        assert store.logger is None
        assert not (tmp_dir / "logs").exists()
