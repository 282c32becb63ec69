import os
import json
from pathlib import Path
from dotenv import load_dotenv
from .logging_config import setup_app_logging
import logging

# Load environment variables from .env file
load_dotenv()

# Get the config directory path (where this file is located)
CONFIG_DIR = Path(__file__).parent
PROJECT_ROOT = CONFIG_DIR.parent

# Load configuration from config.json
config_path = CONFIG_DIR / 'config.json'
with open(config_path, 'r', encoding='utf-8') as f:
    CONFIG = json.load(f)

CONFIG['project_root'] = str(PROJECT_ROOT)

# --- Prompt Loading ---
# Each workflow reads its instruction text from CONFIG instead of the filesystem,
# so prompts are read once here at import time.
PROMPT_FILES = {
    'classification_prompt': 'classification_system_prompt.txt',
    'agent_system_prompt': 'agent_system_prompt.txt',
    'simple_response_prompt': 'simple_response_prompt.txt',
    'email_generation_prompt': 'email_generation_prompt.txt',
    'task_completion_prompt': 'task_completion_prompt.txt',
}

for config_key, file_name in PROMPT_FILES.items():
    prompt_path = CONFIG_DIR / file_name
    try:
        with open(prompt_path, 'r', encoding='utf-8') as f:
            CONFIG[config_key] = f.read().strip()
    except FileNotFoundError:
        raise FileNotFoundError(
            f"Prompt file not found: {prompt_path}\n"
            f"Please ensure {file_name} exists in the config directory."
        )

# Environment variables. Secrets and the agent identity never live in config.json.
ENV = {
    'A1BASE_API_KEY': os.getenv('A1BASE_API_KEY'),
    'A1BASE_API_SECRET': os.getenv('A1BASE_API_SECRET'),
    'A1BASE_ACCOUNT_ID': os.getenv('A1BASE_ACCOUNT_ID'),
    'A1BASE_AGENT_NUMBER': os.getenv('A1BASE_AGENT_NUMBER'),
    'A1BASE_AGENT_NAME': os.getenv('A1BASE_AGENT_NAME'),
    'A1BASE_AGENT_EMAIL': os.getenv('A1BASE_AGENT_EMAIL'),
    'SUPABASE_URL': os.getenv('SUPABASE_URL'),
    'SUPABASE_KEY': os.getenv('SUPABASE_KEY'),
    'CRON_SECRET': os.getenv('CRON_SECRET'),
}

# Only the messaging gateway credentials are mandatory. Supabase is optional
# (the service falls back to in-memory storage) and CRON_SECRET only guards /api/cron.
REQUIRED_ENV_VARS = ['A1BASE_API_KEY', 'A1BASE_API_SECRET', 'A1BASE_ACCOUNT_ID', 'A1BASE_AGENT_NUMBER']


def validate_config():
    """Validate that all required environment variables and configuration settings are present.

    LLM API keys are not checked here; they are validated by the provider layer when a
    client is actually built.
    """
    missing_env_vars = [key for key in REQUIRED_ENV_VARS if not ENV.get(key)]
    if missing_env_vars:
        raise EnvironmentError(
            f"Missing required environment variables: {', '.join(missing_env_vars)}\n"
            f"Please check your .env file."
        )

    required_sections = ['llm', 'agent', 'conversation', 'workflows', 'messages', 'gateway', 'storage']
    for section in required_sections:
        if section not in CONFIG:
            raise ValueError(f"Missing configuration section: {section}")

    required_models = ['classification', 'response', 'email']
    for model in required_models:
        if model not in CONFIG['llm'].get('models', {}):
            raise ValueError(f"Missing configuration for LLM model: {model}")

    window_size = CONFIG['conversation'].get('window_size')
    if not isinstance(window_size, int) or window_size < 1:
        raise ValueError(f"conversation.window_size must be a positive integer, got: {window_size!r}")


# Validate configuration on module import
validate_config()


def get_config_value(json_keys: list, env_var_name: str, default_value: any = None):
    """
    Retrieves a configuration value.
    Priority:
    1. Environment variable (if env_var_name is provided and variable is set).
    2. Value from CONFIG dictionary (using json_keys).
    3. default_value.
    """
    if env_var_name:
        env_value = os.getenv(env_var_name)
        if env_value is not None:
            if isinstance(default_value, bool):
                if env_value.lower() == 'true': return True
                if env_value.lower() == 'false': return False
            elif isinstance(default_value, int):
                try:
                    return int(env_value)
                except ValueError:
                    pass  # Fall through to JSON or default if not a valid int
            return env_value

    current_level = CONFIG
    try:
        for key in json_keys:
            current_level = current_level[key]
        if isinstance(current_level, (str, int, bool, float, list, dict)):
            return current_level
    except (KeyError, TypeError):
        pass

    return default_value


# --- Logging Configuration ---
# Environment variables take precedence over config.json.
CONFIG['logging'] = {
    'level': get_config_value(['logging', 'level'], 'LOG_LEVEL', 'INFO'),
    'file_path': get_config_value(['logging', 'file_path'], 'LOG_FILE_PATH', 'logs/whatsapp_agent.log'),
    'max_bytes': get_config_value(['logging', 'max_bytes'], 'LOG_MAX_BYTES', 5*1024*1024),  # 5MB
    'backup_count': get_config_value(['logging', 'backup_count'], 'LOG_BACKUP_COUNT', 3),
    'date_format': get_config_value(['logging', 'date_format'], 'LOG_DATE_FORMAT', '%Y-%m-%d %H:%M:%S'),
}

# Runtime toggles that operators commonly flip per deployment
CONFIG['conversation']['split_paragraphs'] = get_config_value(
    ['conversation', 'split_paragraphs'], 'SPLIT_PARAGRAPHS', False
)
CONFIG['workflows']['email_requires_confirmation'] = get_config_value(
    ['workflows', 'email_requires_confirmation'], 'EMAIL_REQUIRES_CONFIRMATION', False
)
CONFIG['llm']['provider'] = get_config_value(['llm', 'provider'], 'LLM_PROVIDER', 'openai')

setup_app_logging(config=CONFIG.get('logging'))

config_init_logger = logging.getLogger(__name__)
config_init_logger.info("[config_init] Logging initialized from config/__init__.py using setup_app_logging.")
