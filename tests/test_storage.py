"""Tests for host platforms, scope backends and the backend factory."""

import json
from unittest.mock import patch

import pytest

from optionsengine.core.exceptions import ConfigurationError, StorageError
from optionsengine.core.scope import OptionScope, StorageContext
from optionsengine.storage import (
    BlogOptionStorage,
    InMemoryHost,
    JsonFileHost,
    NetworkOptionStorage,
    SiteOptionStorage,
    StorageBackendFactory,
    StorageConfig,
    UserMetaStorage,
    UserOptionStorage,
)
from optionsengine.storage.host import NETWORK_TABLE, blog_table, useroption_table


class TestInMemoryHost:
    """Test the dict-backed host platform."""

    def test_add_refuses_existing_record(self):
        host = InMemoryHost()

        assert host.add("blog:1", "app", {"a": 1}, autoload=True)
        assert not host.add("blog:1", "app", {"a": 2})
        assert host.read("blog:1", "app") == {"a": 1}
        assert host.autoload_flag("blog:1", "app") is True

    def test_update_creates_and_keeps_autoload(self):
        host = InMemoryHost()

        assert host.update("blog:1", "app", 1, autoload=False)
        assert host.update("blog:1", "app", 2)
        assert host.read("blog:1", "app") == 2
        assert host.autoload_flag("blog:1", "app") is False

    def test_reads_are_copies(self):
        host = InMemoryHost()
        host.add("blog:1", "app", {"tags": ["a"]})
        host.read("blog:1", "app")["tags"].append("b")

        assert host.read("blog:1", "app") == {"tags": ["a"]}

    def test_exists_for_falsy_values(self):
        host = InMemoryHost()
        host.add("blog:1", "app", {})

        assert host.exists("blog:1", "app")
        assert not host.exists("blog:1", "other")

    def test_delete(self):
        host = InMemoryHost()
        host.add("blog:1", "app", 1)

        assert host.delete("blog:1", "app")
        assert not host.delete("blog:1", "app")

    def test_capabilities(self):
        host = InMemoryHost(current_user_id=0)
        host.grant(2, "manage_options")

        assert not host.current_user_can("manage_options")
        host.set_current_user(2)
        assert host.current_user_can("manage_options")
        assert host.current_user_can("edit_user", 2)
        assert not host.current_user_can("edit_user", 3)
        host.grant(2, "edit_users")
        assert host.current_user_can("edit_user", 3)


class TestJsonFileHost:
    """Test the JSON file persisted host."""

    def test_changes_survive_reload(self, tmp_path):
        path = tmp_path / "store" / "options.json"
        host = JsonFileHost(path, current_user_id=4)
        host.grant(4, "manage_options")
        host.add(blog_table(1), "app", {"retries": 3}, autoload=True)

        reloaded = JsonFileHost(path)

        assert reloaded.read(blog_table(1), "app") == {"retries": 3}
        assert reloaded.current_user_id() == 4
        assert reloaded.current_user_can("manage_options")

    def test_no_temp_files_left(self, tmp_path):
        path = tmp_path / "options.json"
        JsonFileHost(path).add(NETWORK_TABLE, "app", 1)

        assert [p.name for p in tmp_path.iterdir()] == ["options.json"]
        assert json.loads(path.read_text())["tables"][NETWORK_TABLE]["app"]["value"] == 1

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text("{not json")

        with pytest.raises(StorageError, match="Failed to read"):
            JsonFileHost(path)

    def test_non_object_file(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text("[1, 2]")

        with pytest.raises(StorageError, match="JSON object"):
            JsonFileHost(path)

    def test_failed_write_rolls_back(self, tmp_path):
        path = tmp_path / "options.json"
        host = JsonFileHost(path)
        host.add(NETWORK_TABLE, "app", {"retries": 3})

        with patch("optionsengine.storage.host.os.replace", side_effect=OSError("disk full")):
            assert host.update(NETWORK_TABLE, "app", {"retries": 9}) is False
            assert host.add(NETWORK_TABLE, "other", {"a": 1}) is False
            assert host.delete(NETWORK_TABLE, "app") is False

        assert host.read(NETWORK_TABLE, "app") == {"retries": 3}
        assert not host.exists(NETWORK_TABLE, "other")
        assert JsonFileHost(path).read(NETWORK_TABLE, "app") == {"retries": 3}
        assert [p.name for p in tmp_path.iterdir()] == ["options.json"]

    def test_failed_write_through_backend_returns_false(self, tmp_path):
        host = JsonFileHost(tmp_path / "options.json")
        storage = NetworkOptionStorage(host)

        with patch("optionsengine.storage.host.os.replace", side_effect=OSError("read-only")):
            assert storage.update("app", {"a": 1}) is False

        assert storage.read("app") is None

    def test_unserializable_value_raises(self, tmp_path):
        path = tmp_path / "options.json"
        host = JsonFileHost(path)
        host.add(NETWORK_TABLE, "app", {"tags": ["a"]})

        with pytest.raises(StorageError, match="can't hold a value"):
            host.update(NETWORK_TABLE, "app", {"tags": {"a", "b"}})

        assert host.read(NETWORK_TABLE, "app") == {"tags": ["a"]}
        assert JsonFileHost(path).read(NETWORK_TABLE, "app") == {"tags": ["a"]}


class TestBackends:
    """Test scope-specific backends."""

    def test_site_uses_current_blog(self, host):
        storage = SiteOptionStorage(host)
        storage.add("app", {"a": 1}, autoload=True)

        assert host.read(blog_table(1), "app") == {"a": 1}
        assert host.autoload_flag(blog_table(1), "app") is True
        assert storage.scope() is OptionScope.SITE

    def test_network_drops_autoload(self, host):
        storage = NetworkOptionStorage(host)
        storage.add("app", 1, autoload=True)

        assert host.autoload_flag(NETWORK_TABLE, "app") is None
        assert not storage.supports_autoload()

    def test_blog_autoload_only_for_current_blog(self, host):
        current = BlogOptionStorage(host, 1)
        other = BlogOptionStorage(host, 2)

        assert current.supports_autoload()
        assert not other.supports_autoload()

        other.add("app", 1, autoload=True)
        assert host.autoload_flag(blog_table(2), "app") is None

        host.switch_blog(2)
        assert other.supports_autoload()

    def test_site_and_current_blog_share_records(self, host):
        SiteOptionStorage(host).add("app", {"a": 1})

        assert BlogOptionStorage(host, 1).read("app") == {"a": 1}

    @pytest.mark.parametrize("blog_id", [0, -2, "1", True])
    def test_blog_id_validation(self, host, blog_id):
        with pytest.raises(ValueError):
            BlogOptionStorage(host, blog_id)

    def test_user_backends(self, host):
        meta = UserMetaStorage(host, 7)
        option = UserOptionStorage(host, 7, global_=True)
        option.update("app", {"theme": "dark"})

        assert meta.read("app") is None
        assert host.read(useroption_table(7, True), "app") == {"theme": "dark"}
        assert not option.supports_autoload()
        assert option.scope() is OptionScope.USER

    def test_user_id_validation(self, host):
        with pytest.raises(ValueError):
            UserMetaStorage(host, 0)

    def test_shared_user_base_is_abstract(self, host):
        from optionsengine.storage.backends.user import _UserStorage

        with pytest.raises(TypeError):
            _UserStorage(host, 7)

    @pytest.mark.parametrize("key", ["", "   ", "a\nb", "x" * 192])
    def test_invalid_keys(self, host, key):
        with pytest.raises(ValueError):
            SiteOptionStorage(host).read(key)

    def test_health_check(self, host):
        health = SiteOptionStorage(host).health_check()

        assert health["status"] == "healthy"
        assert health["scope"] == "site"


class TestStorageBackendFactory:
    """Test scope resolution and backend construction."""

    def test_requires_host(self):
        with pytest.raises(ConfigurationError):
            StorageBackendFactory(object())

    def test_builtin_scopes(self, host):
        factory = StorageBackendFactory(host)

        assert factory.list_scopes() == ["blog", "network", "site", "user"]
        assert isinstance(factory.make(), SiteOptionStorage)
        assert isinstance(factory.make("network"), NetworkOptionStorage)

    @pytest.mark.parametrize(
        "alias,expected",
        [("Single", "site"), ("multisite", "network"), ("subsite", "blog"), ("usermeta", "user")],
    )
    def test_aliases(self, host, alias, expected):
        assert StorageBackendFactory(host).resolve_scope(alias) == expected

    def test_unknown_scope(self, host):
        with pytest.raises(ConfigurationError, match="Unsupported storage scope"):
            StorageBackendFactory(host).make("galaxy")

    def test_blog_requires_int_id(self, host):
        factory = StorageBackendFactory(host)

        assert factory.make("blog", blog_id=3).blog_id() == 3
        with pytest.raises(ConfigurationError, match="integer blog_id"):
            factory.make("blog")
        with pytest.raises(ConfigurationError, match="integer blog_id"):
            factory.make("blog", blog_id=True)
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            factory.make("blog", blog_id=0)

    def test_user_storage_kinds(self, host):
        factory = StorageBackendFactory(host)

        assert isinstance(factory.make("user", user_id=2), UserMetaStorage)
        backend = factory.make("user", user_id=2, user_storage="option", user_global=True)
        assert isinstance(backend, UserOptionStorage)
        assert backend.global_ is True
        with pytest.raises(ConfigurationError):
            factory.make("user", user_id=2, user_storage="cookie")

    def test_make_for_context(self, host):
        backend = StorageBackendFactory(host).make_for_context(StorageContext.for_blog(2))

        assert isinstance(backend, BlogOptionStorage)
        assert backend.blog_id() == 2

    def test_register_and_unregister(self, host):
        factory = StorageBackendFactory(host)
        factory.register_backend("local", SiteOptionStorage, aliases=["here"])

        assert factory.resolve_scope("here") == "local"
        with pytest.raises(ValueError):
            factory.register_backend("local", SiteOptionStorage)
        with pytest.raises(ValueError):
            factory.register_backend("other", dict)

        factory.unregister_backend("local")
        assert "here" not in factory.list_aliases()
        with pytest.raises(KeyError):
            factory.unregister_backend("local")


class TestStorageConfig:
    """Test storage configuration loading."""

    @patch.dict("os.environ", {}, clear=True)
    def test_defaults(self):
        config = StorageConfig()

        assert config.host == "memory"
        assert config.create_context() == StorageContext.for_site()
        assert isinstance(config.create_host(), InMemoryHost)

    @patch.dict("os.environ", {}, clear=True)
    def test_json_file_requires_path(self):
        with pytest.raises(ConfigurationError, match="requires host_config.path"):
            StorageConfig(host="json_file")

    @patch.dict("os.environ", {}, clear=True)
    def test_unsupported_host(self):
        with pytest.raises(ConfigurationError, match="Unsupported host"):
            StorageConfig(host="redis")

    def test_environment_overrides(self, tmp_path):
        env = {
            "OPTIONSENGINE_STORAGE_HOST": "json_file",
            "OPTIONSENGINE_STORAGE_PATH": str(tmp_path / "options.json"),
            "OPTIONSENGINE_STORAGE_SCOPE": "subsite",
            "OPTIONSENGINE_STORAGE_BLOG_ID": "4",
        }
        with patch.dict("os.environ", env, clear=True):
            config = StorageConfig()

        assert isinstance(config.create_host(), JsonFileHost)
        assert config.create_context() == StorageContext.for_blog(4)

    @patch.dict("os.environ", {"OPTIONSENGINE_STORAGE_USER_ID": "seven"}, clear=True)
    def test_invalid_environment_integer_ignored(self, caplog):
        config = StorageConfig(user_id=3)

        assert config.user_id == 3
        assert "not a valid integer" in caplog.text

    @patch.dict("os.environ", {}, clear=True)
    def test_user_context(self):
        config = StorageConfig.from_dict(
            {"scope": "user", "user_id": 5, "user_storage": "option", "user_global": True}
        )

        assert config.create_context() == StorageContext.for_user_id(5, "option", True)

    @patch.dict("os.environ", {}, clear=True)
    def test_yaml_round_trip(self, tmp_path):
        path = tmp_path / "storage.yaml"
        path.write_text(StorageConfig(scope="network").to_yaml())

        assert StorageConfig.from_yaml_file(path).scope == "network"

    @patch.dict("os.environ", {}, clear=True)
    def test_nested_storage_section(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("storage:\n  scope: blog\n  blog_id: 2\n")

        assert StorageConfig.from_yaml_file(path).create_context().blog_id == 2

    @patch.dict("os.environ", {}, clear=True)
    def test_yaml_errors(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            StorageConfig.from_yaml_file(tmp_path / "missing.yaml")

        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            StorageConfig.from_yaml_file(path)
