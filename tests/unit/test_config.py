import pytest

from ynab_autocategorize.config import ConfigError, load_config

REQUIRED = ['--access-token', 'tok', '--budget-id', 'b1']


@pytest.mark.unit
class TestLoadConfig:
    """Test flag/environment parsing and validation"""

    def test_defaults(self):
        config = load_config(REQUIRED, environ={})

        assert config.access_token == 'tok'
        assert config.budget_id == 'b1'
        assert config.min_confidence == 0.6
        assert config.limit is None
        assert config.dry_run is False
        assert config.llm is None

    def test_environment_fallback(self):
        env = {
            'YNAB_ACCESS_TOKEN': 'env-tok',
            'YNAB_BUDGET_ID': 'env-budget',
            'YNAB_SINCE_DATE': '2025-01-01',
            'YNAB_DRY_RUN': 'yes',
            'YNAB_MAX_UPDATES': '5',
            'YNAB_MIN_CONFIDENCE': '0.75',
        }

        config = load_config([], environ=env)

        assert config.access_token == 'env-tok'
        assert config.budget_id == 'env-budget'
        assert config.dry_run is True
        assert config.limit == 5
        assert config.min_confidence == 0.75

    def test_flags_override_environment(self):
        config = load_config(REQUIRED, environ={'YNAB_BUDGET_ID': 'other'})

        assert config.budget_id == 'b1'

    def test_history_since_defaults_to_since(self):
        config = load_config(REQUIRED + ['--since-date', '2025-03-01'], environ={})

        assert config.history_since_date == '2025-03-01'

    def test_history_since_can_differ(self):
        config = load_config(
            REQUIRED + ['--since-date', '2025-03-01', '--history-since-date', '2023-01-01'],
            environ={},
        )

        assert config.since_date == '2025-03-01'
        assert config.history_since_date == '2023-01-01'

    @pytest.mark.parametrize("argv, message", [
        (['--budget-id', 'b1'], 'YNAB_ACCESS_TOKEN'),
        (['--access-token', 'tok'], 'YNAB_BUDGET_ID'),
        (REQUIRED + ['--since-date', '01/02/2025'], 'since-date'),
        (REQUIRED + ['--history-since-date', '2025-1-1'], 'history-since-date'),
        (REQUIRED + ['--min-confidence', '1.5'], 'min-confidence'),
        (REQUIRED + ['--min-confidence', '-0.1'], 'min-confidence'),
        (REQUIRED + ['--min-confidence', 'high'], 'min-confidence'),
        (REQUIRED + ['--limit', '0'], 'limit'),
        (REQUIRED + ['--limit', '-3'], 'limit'),
        (REQUIRED + ['--limit', 'ten'], 'limit'),
    ])
    def test_invalid_configuration(self, argv, message):
        with pytest.raises(ConfigError, match=message):
            load_config(argv, environ={})

    def test_api_key_enables_llm_with_defaults(self):
        config = load_config(REQUIRED, environ={'ANTHROPIC_API_KEY': 'sk-test'})

        assert config.llm.api_key == 'sk-test'
        assert config.llm.model == 'claude-sonnet-4-20250514'
        assert config.llm.temperature == 0.1
        assert config.llm.max_tokens == 200
        assert config.llm.base_url is None

    def test_llm_settings_are_clamped(self):
        argv = REQUIRED + [
            '--anthropic-api-key', 'sk-test',
            '--llm-model', 'claude-other',
            '--llm-temperature', '5',
            '--llm-max-tokens', '5000',
        ]

        config = load_config(argv, environ={'ANTHROPIC_BASE_URL': 'http://localhost:8080'})

        assert config.llm.model == 'claude-other'
        assert config.llm.temperature == 2.0
        assert config.llm.max_tokens == 2000
        assert config.llm.base_url == 'http://localhost:8080'

    def test_unparseable_llm_settings_use_defaults(self):
        env = {
            'ANTHROPIC_API_KEY': 'sk-test',
            'YNAB_LLM_TEMPERATURE': 'warm',
            'YNAB_LLM_MAX_TOKENS': 'lots',
        }

        config = load_config(REQUIRED, environ=env)

        assert config.llm.temperature == 0.1
        assert config.llm.max_tokens == 200

    def test_max_tokens_lower_bound(self):
        config = load_config(REQUIRED + ['--llm-max-tokens', '0'], environ={'ANTHROPIC_API_KEY': 'k'})

        assert config.llm.max_tokens == 1
