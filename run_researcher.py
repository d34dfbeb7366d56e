#!/usr/bin/env python3
"""Run the research assistant on a sample question."""
import asyncio
import sys

from deep_researcher.agents.researcher import simple_researcher
from deep_researcher.config import load_settings
from deep_researcher.telemetry import initialize_telemetry

EXAMPLE_QUERY = "What is LangGraph?"


def check_api_key(settings) -> None:
    """Warn when the chat API credential is missing."""
    if settings.openai_api_key:
        return
    print("=" * 80, file=sys.stderr)
    print("WARNING: OPENAI_API_KEY not configured!", file=sys.stderr)
    print("Set it in a .env file or export it before running:", file=sys.stderr)
    print("  export OPENAI_API_KEY='your-api-key-here'", file=sys.stderr)
    print("The researcher will return its fallback answer instead.", file=sys.stderr)
    print("=" * 80, file=sys.stderr)


def main() -> int:
    settings = load_settings()
    initialize_telemetry(settings)
    check_api_key(settings)

    print("=== Deep Researcher Hello World ===")
    print("This example demonstrates a simple research workflow:")
    print("1. Take a user query")
    print("2. Perform research (simulated)")
    print("3. Generate answer using OpenAI\n")
    print(f'Researching: "{EXAMPLE_QUERY}"')

    result = asyncio.run(simple_researcher(EXAMPLE_QUERY))

    print("\nResearch Result:")
    print(result)
    print("\nNote: This is a simplified version of the Deep Researcher.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
