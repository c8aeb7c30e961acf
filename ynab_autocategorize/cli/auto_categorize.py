#!/usr/bin/env python3
"""
Auto-categorize CLI

Learns from your categorized YNAB transactions and assigns categories to
uncategorized ones, asking Claude when history isn't conclusive.
"""
import sys
import traceback
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from ynab_autocategorize.config import AutoCategorizeConfig, ConfigError, load_config
from ynab_autocategorize.core.categorization_orchestrator import (
    CategorizationOrchestrator,
    should_skip_candidate,
)
from ynab_autocategorize.core.history_learner import build_history
from ynab_autocategorize.core.llm_categorizer import LLMCategorizer
from ynab_autocategorize.core.models import (
    CategorizationDecision,
    build_category_map,
    format_amount,
)
from ynab_autocategorize.utils.logging_setup import configure_logging
from ynab_autocategorize.utils.ynab_client import YNABClient, YNABError


def create_llm_categorizer(config: AutoCategorizeConfig) -> Optional[LLMCategorizer]:
    if config.llm is None:
        return None

    return LLMCategorizer(
        model=config.llm.model,
        temperature=config.llm.temperature,
        max_tokens=config.llm.max_tokens,
        api_key=config.llm.api_key,
        base_url=config.llm.base_url,
    )


def print_decisions(decisions: List[CategorizationDecision], config: AutoCategorizeConfig):
    """Print the planned updates"""
    print("\n📋 Planned updates:")

    for decision in decisions:
        txn, match = decision.transaction, decision.match

        payee = txn.payee_name or txn.import_payee_name or 'Unknown Payee'
        confidence = 'n/a' if match.confidence is None else f"{round(match.confidence * 100)}%"
        key_label = match.key or (', '.join(match.considered_keys) if match.considered_keys else 'n/a')

        print(f"- {txn.date} | {payee} | {format_amount(txn.amount)} → "
              f"{match.category.group_name} / {match.category.name} "
              f"(confidence: {confidence}, key: {key_label}, source: {match.source})")

        if match.source == 'history':
            reference_date = match.reference.date if match.reference else 'unknown date'
            reference_amount = format_amount(match.reference.amount) if match.reference else 'n/a'
            print(f"    Based on {match.occurrences}/{match.total} historical transactions "
                  f"(last: {reference_date} for {reference_amount}).")
        elif match.source == 'fallback':
            model = config.llm.model if config.llm else 'unknown'
            reason = match.reason.strip() if match.reason else 'No explanation provided.'
            print(f"    Selected by LLM model {model} using keys "
                  f"[{', '.join(match.considered_keys) or 'n/a'}]. Reason: {reason}")

    if config.limit and len(decisions) >= config.limit:
        print(f"\n⏹️  Limit reached ({config.limit} transactions).")


def run(config: AutoCategorizeConfig, client: YNABClient) -> int:
    """
    Run one categorization pass

    Returns:
        Number of transactions updated (or that would be, on a dry run)
    """
    print(f"\n📚 Fetching categories for budget {config.budget_id}...")
    category_map = build_category_map(client.get_category_groups(config.budget_id))

    since = f" since {config.history_since_date}" if config.history_since_date else ''
    print(f"\n🧠 Fetching historical transactions{since}...")
    history_transactions = client.get_transactions(
        config.budget_id, since_date=config.history_since_date
    )
    history = build_history(history_transactions, category_map)
    print(f"   ✅ Built history from {len(history_transactions)} transactions "
          f"across {len(history)} unique match keys")

    since = f" since {config.since_date}" if config.since_date else ''
    print(f"\n🔎 Fetching uncategorized transactions{since}...")
    candidates = [
        txn for txn in client.get_transactions(
            config.budget_id, since_date=config.since_date, type='uncategorized'
        )
        if not should_skip_candidate(txn)
    ]
    print(f"   Found {len(candidates)} uncategorized transactions to evaluate")

    orchestrator = CategorizationOrchestrator(
        history=history,
        category_map=category_map,
        min_confidence=config.min_confidence,
        llm_categorizer=create_llm_categorizer(config),
        limit=config.limit,
    )
    decisions = orchestrator.categorize_batch(candidates)
    orchestrator.print_stats()

    if not decisions:
        print("\n⚠️  No transactions met the confidence threshold.")
        return 0

    print_decisions(decisions, config)

    if config.dry_run:
        print("\n🔍 DRY RUN - no changes were sent to YNAB")
        return len(decisions)

    print("\n💾 Updating transactions in YNAB...")
    client.update_transactions(config.budget_id, decisions)
    print(f"   ✅ Updated {len(decisions)} transactions")
    return len(decisions)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main auto-categorize function"""
    load_dotenv()

    try:
        config = load_config(argv)
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2

    configure_logging('DEBUG' if config.verbose else None)

    print("=" * 80)
    print("🏷️  YNAB AUTO-CATEGORIZE")
    print("=" * 80)
    print(f"Budget: {config.budget_id}")
    print(f"Min confidence: {config.min_confidence:.0%}")
    print(f"LLM fallback: {config.llm.model if config.llm else 'disabled'}")
    print(f"Dry run: {config.dry_run}")
    print("=" * 80)

    try:
        client = YNABClient(config.access_token)
        run(config, client)
    except YNABError as e:
        print(f"\n❌ Auto-categorization failed: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"\n❌ Auto-categorization failed: {e}", file=sys.stderr)
        traceback.print_exc()
        return 1

    print("\n" + "=" * 80)
    print("✅ Done!")
    print("=" * 80)
    return 0


if __name__ == "__main__":
    sys.exit(main())
