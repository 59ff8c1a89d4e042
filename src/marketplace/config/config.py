import os
import re
from pathlib import Path
from typing import Any, Dict, List, Type

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, create_model

load_dotenv()

DEFAULT_CONFIG_FILE_PATH = Path(__file__).parent / 'config.yaml'

# Environment variables that take precedence over values from the YAML file
ENV_OVERRIDES = {
    'DATABASE_URL': ('Database', 'URL'),
    'LOG_LEVEL': ('Logging', 'LEVEL'),
}

VARIABLE_PATTERN = re.compile(r'\$\{([^}]+)\}')


def load_yaml(file_path: str) -> dict:
    config_path = Path(file_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file '{file_path}' does not exist.")

    with config_path.open('r') as f:
        config_data = yaml.safe_load(f)

    if not isinstance(config_data, dict):
        raise ValueError("Configuration file must contain a YAML dictionary at the root.")

    return config_data


def _resolve_variable(var_name: str, root: Dict[str, Any]) -> Any:
    value = root
    for key in var_name.split('.'):
        if not isinstance(value, dict) or key not in value:
            raise ValueError(f"Variable '{var_name}' not found in configuration.")
        value = value[key]
    return value


def interpolate_config(config: Any, root: Dict[str, Any] = None, visiting: set = None) -> Any:
    """
    Recursively replaces ``${Section.KEY}`` placeholders with values from the
    configuration itself.

    :param config: The (sub-)configuration to interpolate.
    :param root: The full configuration used to resolve dotted names.
    :param visiting: Variables currently being resolved, to detect cycles.
    :return: The interpolated configuration.
    """
    if root is None:
        root = config
    if visiting is None:
        visiting = set()

    if isinstance(config, dict):
        return {key: interpolate_config(value, root, visiting) for key, value in config.items()}
    if isinstance(config, list):
        return [interpolate_config(item, root, visiting) for item in config]
    if not isinstance(config, str):
        return config

    value = config
    for var in VARIABLE_PATTERN.findall(config):
        if var in visiting:
            raise ValueError(f"Circular reference detected for variable '{var}'.")
        var_value = _resolve_variable(var, root)
        if isinstance(var_value, str) and VARIABLE_PATTERN.search(var_value):
            visiting.add(var)
            var_value = interpolate_config(var_value, root, visiting)
            visiting.remove(var)
        if not isinstance(var_value, (str, int, float)):
            raise ValueError(f"Variable '{var}' is of unsupported type {type(var_value)} for interpolation.")
        # A placeholder spanning the whole value keeps the referenced type
        if value == f"${{{var}}}":
            return var_value
        value = value.replace(f"${{{var}}}", str(var_value))
    return value


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    for env_name, (section, key) in ENV_OVERRIDES.items():
        env_value = os.getenv(env_name)
        if env_value:
            config.setdefault(section, {})[key] = env_value
    return config


def generate_pydantic_model(
    model_name: str,
    data: Any,
    model_cache: Dict[str, Type[BaseModel]] = None
) -> Type[BaseModel]:
    """
    Recursively generates Pydantic models from a nested dictionary.

    :param model_name: Name of the Pydantic model to create.
    :param data: The data to create the model from (dict, list, or primitive).
    :param model_cache: A cache of already created nested models.
    :return: A Pydantic BaseModel subclass (or a plain type for primitives).
    """
    if model_cache is None:
        model_cache = {}

    if isinstance(data, dict):
        fields = {}
        for key, value in data.items():
            field_name = key.replace('-', '_').replace(' ', '_')
            nested_name = f"{model_name}_{key.capitalize()}"
            if isinstance(value, (dict, list)):
                field_type = model_cache.get(nested_name) or generate_pydantic_model(nested_name, value, model_cache)
            else:
                field_type = type(value)
            fields[field_name] = (field_type, ...)

        model = create_model(model_name, **fields)
        model_cache[model_name] = model
        return model

    if isinstance(data, list):
        if data and isinstance(data[0], dict):
            return List[generate_pydantic_model(f"{model_name}Item", data[0], model_cache)]
        return List[type(data[0])] if data else List[Any]

    return type(data)


def load_settings(file_path: str = None) -> BaseModel:
    config_file = file_path or os.getenv('MARKETPLACE_CONFIG') or str(DEFAULT_CONFIG_FILE_PATH)
    config_data = apply_env_overrides(load_yaml(config_file))
    interpolated = interpolate_config(config_data)
    AppConfigModel = generate_pydantic_model("AppConfig", interpolated)
    return AppConfigModel(**interpolated)


settings = load_settings()
