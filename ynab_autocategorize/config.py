"""
Run configuration

Options come from command-line flags first, then environment variables
(a .env file is loaded by the CLI before this runs).
"""
import argparse
import math
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .core.categorization_orchestrator import DEFAULT_MIN_CONFIDENCE
from .core.llm_categorizer import (
    DEFAULT_LLM_MAX_TOKENS,
    DEFAULT_LLM_MODEL,
    DEFAULT_LLM_TEMPERATURE,
)

DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TRUE_VALUES = ('1', 'true', 'yes', 'on')


class ConfigError(ValueError):
    """Raised for invalid or missing configuration"""


@dataclass(frozen=True)
class LLMOptions:
    """Settings for the Claude fallback"""
    api_key: str
    model: str = DEFAULT_LLM_MODEL
    temperature: float = DEFAULT_LLM_TEMPERATURE
    max_tokens: int = DEFAULT_LLM_MAX_TOKENS
    base_url: Optional[str] = None


@dataclass(frozen=True)
class AutoCategorizeConfig:
    access_token: str
    budget_id: str
    since_date: Optional[str] = None
    history_since_date: Optional[str] = None
    dry_run: bool = False
    limit: Optional[int] = None
    min_confidence: float = DEFAULT_MIN_CONFIDENCE
    llm: Optional[LLMOptions] = None
    verbose: bool = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Categorize uncategorized YNAB transactions from your own history'
    )
    parser.add_argument('--access-token', help='YNAB personal access token (env: YNAB_ACCESS_TOKEN)')
    parser.add_argument('--budget-id', help='Budget to categorize (env: YNAB_BUDGET_ID)')
    parser.add_argument('--since-date', help='Only consider uncategorized transactions on/after YYYY-MM-DD')
    parser.add_argument('--history-since-date', help='Only learn from transactions on/after YYYY-MM-DD')
    parser.add_argument('--dry-run', action='store_true', help='Show planned updates without sending them')
    parser.add_argument('--limit', help='Maximum number of transactions to update')
    parser.add_argument('--min-confidence', help=f'Minimum history confidence 0-1 (default: {DEFAULT_MIN_CONFIDENCE})')
    parser.add_argument('--anthropic-api-key', help='Enables the LLM fallback (env: ANTHROPIC_API_KEY)')
    parser.add_argument('--llm-model', help=f'Claude model (default: {DEFAULT_LLM_MODEL})')
    parser.add_argument('--llm-temperature', help=f'Sampling temperature 0-2 (default: {DEFAULT_LLM_TEMPERATURE})')
    parser.add_argument('--llm-max-tokens', help=f'Reply length cap 1-2000 (default: {DEFAULT_LLM_MAX_TOKENS})')
    parser.add_argument('--llm-base-url', help='Alternate Anthropic API endpoint')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show diagnostic logging')
    return parser


def is_valid_date(value: str) -> bool:
    return bool(DATE_PATTERN.match(value))


def parse_bool(value: Optional[str]) -> bool:
    if not isinstance(value, str):
        return False
    return value.strip().lower() in TRUE_VALUES


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse an integer, returning None when absent or malformed"""
    if value is None or value == '':
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_float(value: Optional[str], default: float) -> float:
    if value is None or value == '':
        return default
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return default
    return default if math.isnan(parsed) else parsed


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def load_config(argv: Optional[Sequence[str]] = None,
                environ: Optional[Mapping[str, str]] = None) -> AutoCategorizeConfig:
    """
    Parse flags and environment into a validated configuration

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigError: Missing credentials, malformed dates, confidence out
            of range, or a non-positive limit
    """
    env = os.environ if environ is None else environ
    args = build_parser().parse_args(argv)

    def option(flag_value, *env_names):
        if flag_value:
            return flag_value
        for name in env_names:
            if env.get(name):
                return env[name]
        return None

    access_token = option(args.access_token, 'YNAB_ACCESS_TOKEN')
    budget_id = option(args.budget_id, 'YNAB_BUDGET_ID')
    since_date = option(args.since_date, 'YNAB_SINCE_DATE')
    history_since_date = option(args.history_since_date, 'YNAB_HISTORY_SINCE_DATE') or since_date
    dry_run = args.dry_run or parse_bool(env.get('YNAB_DRY_RUN'))
    raw_limit = option(args.limit, 'YNAB_MAX_UPDATES')
    raw_min_confidence = option(args.min_confidence, 'YNAB_MIN_CONFIDENCE')

    if not access_token:
        raise ConfigError('Set YNAB_ACCESS_TOKEN (or use --access-token).')

    if not budget_id:
        raise ConfigError('Set YNAB_BUDGET_ID (or use --budget-id).')

    if since_date and not is_valid_date(since_date):
        raise ConfigError(f'Invalid since-date value: {since_date}')

    if history_since_date and not is_valid_date(history_since_date):
        raise ConfigError(f'Invalid history-since-date value: {history_since_date}')

    try:
        min_confidence = (DEFAULT_MIN_CONFIDENCE if raw_min_confidence is None
                          else float(raw_min_confidence))
    except ValueError:
        raise ConfigError(f'Invalid min-confidence value: {raw_min_confidence}') from None

    if not 0 <= min_confidence <= 1:
        raise ConfigError('min-confidence must be a decimal between 0 and 1.')

    limit = None
    if raw_limit is not None:
        limit = parse_int(raw_limit)
        if limit is None or limit <= 0:
            raise ConfigError('limit must be a positive integer.')

    llm = None
    api_key = option(args.anthropic_api_key, 'ANTHROPIC_API_KEY')
    if api_key:
        temperature = parse_float(option(args.llm_temperature, 'YNAB_LLM_TEMPERATURE'),
                                  DEFAULT_LLM_TEMPERATURE)
        max_tokens = parse_int(option(args.llm_max_tokens, 'YNAB_LLM_MAX_TOKENS'))
        llm = LLMOptions(
            api_key=api_key,
            model=option(args.llm_model, 'YNAB_LLM_MODEL') or DEFAULT_LLM_MODEL,
            temperature=clamp(temperature, 0.0, 2.0),
            max_tokens=int(clamp(max_tokens, 1, 2000)) if max_tokens is not None else DEFAULT_LLM_MAX_TOKENS,
            base_url=option(args.llm_base_url, 'YNAB_LLM_BASE_URL', 'ANTHROPIC_BASE_URL'),
        )

    return AutoCategorizeConfig(
        access_token=access_token,
        budget_id=budget_id,
        since_date=since_date,
        history_since_date=history_since_date,
        dry_run=dry_run,
        limit=limit,
        min_confidence=min_confidence,
        llm=llm,
        verbose=args.verbose,
    )
