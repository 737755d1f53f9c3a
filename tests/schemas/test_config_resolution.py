import pytest
from pydantic import ValidationError

from bulletcluster.schemas import ParamConfig, UserConfig, CLIConfig, InternalConfig, resolve_config
from bulletcluster.schemas.resolve import deep_merge

pytestmark = pytest.mark.unit


def test_defaults_resolve_to_valid_config(internal_config):
    assert isinstance(internal_config, InternalConfig)
    assert internal_config.database.host == "localhost"
    assert internal_config.database.port == 5432
    assert internal_config.database.name == "spectral_analysis"
    assert internal_config.spark.master == "local[*]"
    assert internal_config.spark.driver_memory == "4g"
    assert internal_config.ingestion.batch_size == 1000
    assert internal_config.processing.rest_halpha == pytest.approx(6564.61)
    assert internal_config.analysis.correlation_method == "spearman"


def test_user_overrides_defaults():
    user = UserConfig.model_validate({
        "DB_HOST": "db.internal",
        "DB_PORT": "6543",
        "SDSS_BATCH_SIZE": "250",
        "SPARK_DRIVER_MEMORY": "8G",
    })
    config = resolve_config(ParamConfig(), user)

    assert config.database.host == "db.internal"
    assert config.database.port == 6543
    assert config.ingestion.batch_size == 250
    assert config.spark.driver_memory == "8g"
    # untouched sections keep defaults
    assert config.database.name == "spectral_analysis"


def test_cli_beats_user_beats_defaults():
    user = UserConfig(batch_size=250, base_dir="/from/env")
    cli = CLIConfig(batch_size=50)

    config = resolve_config(ParamConfig(), user, cli)

    assert config.ingestion.batch_size == 50
    assert config.base_dir == "/from/env"


def test_cli_overrides_do_not_mutate_user():
    user = UserConfig(batch_size=250)
    resolve_config(ParamConfig(), user, CLIConfig(batch_size=50))
    assert user.batch_size == 250


def test_dict_user_config_is_validated():
    config = resolve_config(ParamConfig(), {"DB_NAME": "other"}, {"log_level": "DEBUG"})
    assert config.database.name == "other"
    assert config.logging.level == "DEBUG"


def test_blank_env_values_count_as_unset():
    user = UserConfig.model_validate({"DB_HOST": "", "LAMOST_API_KEY": "  ", "SPARK_DRIVER_MEMORY": ""})
    config = resolve_config(ParamConfig(), user)
    assert config.database.host == "localhost"
    assert config.ingestion.lamost_api_key is None
    assert config.spark.driver_memory == "4g"


def test_unknown_env_keys_are_ignored():
    user = UserConfig.model_validate({"SOME_OTHER_TOOL": "x", "DB_USER": "alice"})
    assert user.db_user == "alice"


def test_invalid_memory_rejected():
    with pytest.raises(ValidationError):
        UserConfig.model_validate({"SPARK_EXECUTOR_MEMORY": "lots"})


@pytest.mark.parametrize("value", ["4096", "4gb", "g"])
def test_memory_requires_single_unit_suffix(value):
    with pytest.raises(ValidationError):
        UserConfig.model_validate({"SPARK_DRIVER_MEMORY": value})


def test_invalid_port_rejected():
    with pytest.raises(ValidationError):
        resolve_config(ParamConfig(), {"DB_PORT": "70000"})


def test_invalid_batch_size_rejected():
    with pytest.raises(ValidationError):
        CLIConfig(batch_size=0)


def test_redshift_range_must_be_ordered():
    with pytest.raises(ValidationError):
        ParamConfig.model_validate({"ingestion": {"redshift_range": (0.5, 0.1)}})


def test_internal_config_is_frozen(internal_config):
    with pytest.raises(ValidationError):
        internal_config.base_dir = "/elsewhere"


def test_internal_config_rejects_unknown_fields(internal_config):
    data = internal_config.model_dump()
    data["unexpected"] = 1
    with pytest.raises(ValidationError):
        InternalConfig.model_validate(data)


def test_secrets_masked_in_json_dump():
    config = resolve_config(ParamConfig(), {"DB_PASSWORD": "hunter2"})
    assert config.database.password.get_secret_value() == "hunter2"
    dumped = config.model_dump(mode="json")
    assert "hunter2" not in str(dumped)


def test_log_level_normalized(make_config):
    config = make_config(log_level="debug")
    assert config.logging.level == "DEBUG"


def test_deep_merge_nested():
    base = {"a": 1, "b": {"c": 2, "d": 3}}
    merged = deep_merge(base, {"b": {"d": 4}}, {"e": 5})
    assert merged == {"a": 1, "b": {"c": 2, "d": 4}, "e": 5}
    assert base == {"a": 1, "b": {"c": 2, "d": 3}}
