"""Tests for configuration management."""

import tempfile

import pytest
import yaml
from pydantic import ValidationError

from kinesis_sink.config.settings import (
    DeferredValue,
    KinesisSinkConfig,
    LiteralValue,
    LoggingConfig,
    SinkSettings,
    classify_value,
    load_settings,
    normalize_distribute,
    resolve_config,
    resolve_macros,
    substitute_env_vars,
)
from kinesis_sink.errors import ConfigurationError
from kinesis_sink.models import DistributionMode


class TestKinesisSinkConfig:
    """Test Kinesis option defaults and accessors."""

    def test_default_shard_count(self):
        """Unset shard count resolves to 1."""
        config = KinesisSinkConfig(name="s", accessID="id", accessKey="secret")
        assert config.get_shard_count() == 1

    def test_explicit_shard_count(self):
        assert KinesisSinkConfig(name="s", shardCount=4).get_shard_count() == 4
        assert KinesisSinkConfig(name="s", shardCount="3").get_shard_count() == 3

    def test_unresolved_shard_count(self):
        config = KinesisSinkConfig(name="s", shardCount="${SHARDS}")
        with pytest.raises(ConfigurationError, match="not been resolved"):
            config.get_shard_count()

    def test_non_numeric_shard_count(self):
        with pytest.raises(ConfigurationError, match="must be an integer"):
            KinesisSinkConfig(name="s", shardCount="many").get_shard_count()

    def test_aliases_and_field_names(self):
        """Options can be given by pipeline name or python name."""
        by_alias = KinesisSinkConfig(referenceName="ref", accessID="id", accessKey="k", bodyField="b")
        by_name = KinesisSinkConfig(reference_name="ref", access_id="id", access_key="k", body_field="b")
        assert by_alias == by_name

    def test_stream_target(self):
        config = KinesisSinkConfig(name="orders", shardCount=3, distribute="TRUE")
        target = config.to_stream_target()

        assert target.name == "orders"
        assert target.shard_count == 3
        assert target.mode == DistributionMode.SPREAD

    def test_stream_target_defaults_to_single(self):
        target = KinesisSinkConfig(name="orders").to_stream_target()
        assert target.shard_count == 1
        assert target.mode == DistributionMode.SINGLE

    def test_unresolved_credentials(self):
        config = KinesisSinkConfig(name="s", accessID="${AWS_ID}", accessKey="secret")
        with pytest.raises(ConfigurationError):
            config.get_credentials()

    def test_credentials_repr_hides_secret(self):
        credentials = KinesisSinkConfig(name="s", accessID="id", accessKey="topsecret").get_credentials()
        assert "topsecret" not in repr(credentials)
        assert credentials.secret_access_key == "topsecret"


class TestDistributeNormalization:
    """The distribute flag normalizes to exactly 'true' or 'false'."""

    @pytest.mark.parametrize("value", ["true", "TRUE", "True", True])
    def test_true_values(self, value):
        assert normalize_distribute(value) == "true"

    @pytest.mark.parametrize("value", [
        "false", "yes", "1", "", "truthy", "on", None, False, "t", " true ", "true\n", "\ttrue"
    ])
    def test_everything_else_is_false(self, value):
        assert normalize_distribute(value) == "false"

    def test_config_accessor(self):
        assert KinesisSinkConfig(name="s", distribute="yes").get_distribute() == "false"
        assert KinesisSinkConfig(name="s").get_distribute() == "false"


class TestMacros:
    """Test deferred value classification and resolution."""

    def test_classify_literal(self):
        assert classify_value("abc") == LiteralValue("abc")
        assert classify_value(None) == LiteralValue("")
        assert classify_value(3) == LiteralValue("3")

    def test_classify_deferred(self):
        assert classify_value("${SECRET}") == DeferredValue("${SECRET}")
        assert classify_value("prefix-${ENV}") == DeferredValue("prefix-${ENV}")

    def test_substitute_env_vars(self):
        env = {'A': 'one', 'B': 'two'}
        data = {'x': '${A}', 'y': ['${B}-${C:-three}'], 'z': 5}

        assert substitute_env_vars(data, env) == {'x': 'one', 'y': ['two-three'], 'z': 5}

    def test_substitute_missing_required(self):
        with pytest.raises(ValueError, match="MISSING"):
            substitute_env_vars('${MISSING}', {})

    def test_resolve_config(self):
        config = KinesisSinkConfig(
            name="${STREAM}",
            accessID="${AWS_ID}",
            accessKey="${AWS_SECRET}",
            shardCount="${SHARDS:-2}"
        )
        resolved = resolve_config(config, {'STREAM': 'events', 'AWS_ID': 'id', 'AWS_SECRET': 'secret'})

        assert resolved.name == "events"
        assert resolved.access_id == "id"
        assert resolved.access_key == "secret"
        assert resolved.get_shard_count() == 2
        assert not resolved.contains_macro("access_id")

    def test_resolve_config_missing_variable(self):
        config = KinesisSinkConfig(name="s", accessID="${AWS_ID}")
        with pytest.raises(ConfigurationError, match="AWS_ID"):
            resolve_config(config, {})

    def test_resolve_macros_keeps_other_sections(self):
        settings = SinkSettings(
            service_name="svc",
            kinesis=KinesisSinkConfig(name="${STREAM}")
        )
        resolved = resolve_macros(settings, {'STREAM': 'events'})

        assert resolved.kinesis.name == "events"
        assert resolved.service_name == "svc"
        assert settings.kinesis.name == "${STREAM}"


class TestSettingsLoading:
    """Test configuration loading from files."""

    def test_default_settings(self):
        settings = SinkSettings()

        assert settings.service_name == "kinesis-sink"
        assert settings.retry.max_attempts == 5
        assert settings.job.skip_failed_records is False

    def test_load_from_yaml_file(self, monkeypatch):
        monkeypatch.setenv("TEST_REGION", "eu-west-1")
        config_data = {
            'service_name': 'yaml-sink',
            'kinesis': {
                'referenceName': 'ref',
                'name': 'events',
                'accessID': '${AWS_ID}',
                'accessKey': '${AWS_SECRET}',
                'shardCount': 2,
                'distribute': 'true'
            },
            'aws': {'region': '${TEST_REGION}'},
            'retry': {'max_attempts': 2}
        }

        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            yaml.dump(config_data, f)
            path = f.name

        settings = load_settings(path)

        assert settings.service_name == 'yaml-sink'
        assert settings.aws.region == 'eu-west-1'
        assert settings.retry.max_attempts == 2
        # Kinesis macros stay deferred until the job starts
        assert settings.kinesis.access_id == '${AWS_ID}'
        assert settings.kinesis.contains_macro('access_key')
        assert settings.kinesis.get_shard_count() == 2

    def test_load_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_settings('/nonexistent/sink.yaml')

    def test_load_without_file(self):
        assert isinstance(load_settings(None), SinkSettings)

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError, match="json"):
            LoggingConfig(format="xml")
