import pytest

import webwhisper.util.db as db_module


class TestConfigureEngine:
    def test_configure_engine_returns_engine(self) -> None:
        engine = db_module.configure_engine("sqlite:///:memory:")
        assert engine is not None

    def test_configure_engine_sets_module_engine(self) -> None:
        db_module.configure_engine("sqlite:///:memory:")
        assert db_module.get_engine() is not None

    def teardown_method(self) -> None:
        db_module.reset_engine()


class TestGetEngine:
    def setup_method(self) -> None:
        db_module.reset_engine()

    def test_raises_before_configure(self) -> None:
        with pytest.raises(RuntimeError, match="Database engine not configured"):
            db_module.get_engine()

    def test_returns_engine_after_configure(self) -> None:
        db_module.configure_engine("sqlite:///:memory:")
        assert db_module.get_engine() is not None

    def teardown_method(self) -> None:
        db_module.reset_engine()


class TestEnsureEngine:
    def setup_method(self) -> None:
        db_module.reset_engine()

    def test_reuses_engine_for_same_url(self) -> None:
        first = db_module.ensure_engine("sqlite:///:memory:")
        second = db_module.ensure_engine("sqlite:///:memory:")
        assert first is second

    def test_replaces_engine_for_different_url(self, tmp_path) -> None:
        first = db_module.ensure_engine("sqlite:///:memory:")
        second = db_module.ensure_engine(f"sqlite:///{tmp_path / 'other.db'}")
        assert first is not second
        assert db_module.get_engine() is second

    def teardown_method(self) -> None:
        db_module.reset_engine()


class TestGetSession:
    def setup_method(self) -> None:
        db_module.reset_engine()

    def test_get_session_yields_session(self) -> None:
        db_module.configure_engine("sqlite:///:memory:")
        with db_module.get_session() as session:
            result = session.execute(db_module.text("SELECT 1"))
            assert result.scalar() == 1

    def test_get_session_raises_without_engine(self) -> None:
        with pytest.raises(RuntimeError), db_module.get_session():
            pass

    def teardown_method(self) -> None:
        db_module.reset_engine()


class TestEnsureVectorExtension:
    def test_noop_outside_postgres(self) -> None:
        db_module.configure_engine("sqlite:///:memory:")
        db_module.ensure_vector_extension()

    def teardown_method(self) -> None:
        db_module.reset_engine()
