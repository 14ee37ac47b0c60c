"""
Value Extractor — Interactive CLI

Sends text to the generation endpoint, pulls the first JSON object out of
the reply and records it in the extraction store, exactly like POST /extract.

Usage:
    python main.py                    # Interactive mode with sample texts
    python main.py --text "..."       # Score one text and print the envelope
"""

import argparse
import asyncio
import json
import sys

from dotenv import load_dotenv

from valuescore.config import ExtractorConfig
from valuescore.errors import ExtractorError
from valuescore.inference import InferenceClient
from valuescore.logging_config import setup_logging
from valuescore.output_parser import parse_json_response
from valuescore.pipeline import run_extraction
from valuescore.storage import create_store

# Built-in sample texts for quick testing
SAMPLE_TEXTS = {
    "1": {
        "name": "Nature and Helping Others",
        "text": "I love nature and helping others.",
    },
    "2": {
        "name": "Career Ambition",
        "text": """I want to be the best in my field. I work late every night
        because promotions and recognition matter to me, and I like being
        the one who makes the final call.""",
    },
    "3": {
        "name": "Family Tradition",
        "text": """Every Sunday we go to my grandmother's house, just like my
        parents did. Keeping our customs alive and following the rules we
        were raised with gives me a sense of safety.""",
    },
}


def run_once(text: str, config: ExtractorConfig, client, store) -> dict:
    return asyncio.run(run_extraction(text, config, client, store))


def print_envelope(envelope: dict):
    """Pretty-print the response envelope."""
    print(f"\n{'=' * 60}")
    print("  EXTRACTION RESULT")
    print(f"{'=' * 60}")

    print("\n--- Output ---")
    output = envelope["output"]
    parsed = parse_json_response(output)
    if parsed is not None:
        print(json.dumps(parsed, indent=2))
    else:
        print(output or "(empty)")

    print("\n--- Status ---")
    if envelope["parseError"]:
        print(f"  Parse:   FAILED ({envelope['parseError']})")
    else:
        print("  Parse:   OK")
    if envelope["persisted"]:
        persisted = envelope["persisted"]
        print(f"  Stored:  id={persisted['id']} at {persisted['createdAt']}")
    else:
        print(f"  Stored:  FAILED ({envelope['persistError']})")
    print(f"{'=' * 60}")


def interactive_mode(config: ExtractorConfig, client, store):
    """Run the interactive extraction loop."""
    print("\n" + "=" * 60)
    print("  VALUE EXTRACTOR")
    print(f"  Model: {config.model_label}")
    print("=" * 60)

    while True:
        print("\nOptions:")
        print("  [1-3]  Score a sample text")
        print("  [p]    Paste your own text")
        print("  [q]    Quit")

        for num, sample in SAMPLE_TEXTS.items():
            print(f"    {num}: {sample['name']}")

        choice = input("\nChoice: ").strip().lower()

        if choice == "q":
            print("Goodbye!")
            break

        if choice in SAMPLE_TEXTS:
            text = SAMPLE_TEXTS[choice]["text"]
            print(f"\nScoring: {SAMPLE_TEXTS[choice]['name']}")
        elif choice == "p":
            print("Paste your text (enter a blank line when done):")
            lines = []
            while True:
                line = input()
                if line == "":
                    break
                lines.append(line)
            text = "\n".join(lines)
            if not text.strip():
                print("No text entered.")
                continue
        else:
            print("Invalid choice.")
            continue

        print("\nCalling inference endpoint...")
        try:
            envelope = run_once(text, config, client, store)
        except ExtractorError as e:
            print(f"\nError: {e}")
            continue
        print_envelope(envelope)


def main():
    load_dotenv()
    setup_logging()
    parser = argparse.ArgumentParser(description="Value Extractor")
    parser.add_argument("--text", help="Score this text once and print the result as JSON")
    args = parser.parse_args()

    try:
        config = ExtractorConfig.from_env()
        store = create_store(config.database_url)
    except ExtractorError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    client = InferenceClient(config)

    if args.text is not None:
        try:
            envelope = run_once(args.text, config, client, store)
        except ExtractorError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(json.dumps(envelope, indent=2))
    else:
        interactive_mode(config, client, store)


if __name__ == "__main__":
    main()
