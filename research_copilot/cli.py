"""Research Copilot - run one research request from the terminal.

Bypasses HTTP auth: requests are attributed to a local `cli` identity and
still count against its rate-limit window.
"""

import argparse
import asyncio
import json
import sys
from typing import get_args

from research_copilot.api.deps import get_orchestrator
from research_copilot.errors import ResearchError
from research_copilot.models.schemas import (
    DocContext,
    ResearchMode,
    ResearchOptions,
    ResearchRequest,
)
from research_copilot.services.identity import Identity


async def run_research(request: ResearchRequest, as_json: bool = False) -> int:
    """Run research and print the brief. Returns a process exit code."""
    print(f"Research query: {request.query} (mode: {request.mode})", file=sys.stderr)
    print("-" * 50, file=sys.stderr)

    try:
        run = await get_orchestrator().run(request, Identity(user_id="cli"))
    except ResearchError as e:
        print(f"[!] Error ({e.status_code}): {e.message}", file=sys.stderr)
        return 1

    response = run.response
    if as_json:
        print(json.dumps(response.to_wire(), indent=2))
        return 0

    meta = response.metadata
    print(f"[*] Provider: {meta.provider}  Sources: {meta.source_count}  Runtime: {meta.duration_ms}ms")
    print(f"\n{'=' * 50}\nSUMMARY\n{'=' * 50}")
    print(response.synthesis.summary)

    if response.synthesis.insights:
        print("\nINSIGHTS:")
        for insight in response.synthesis.insights:
            refs = ", ".join(f"[{i}]" for i in insight.sources)
            print(f"  - ({insight.type}, {insight.confidence}) {insight.title} {refs}")
            print(f"    {insight.content}")

    if response.synthesis.key_stats:
        print("\nKEY STATS:")
        for stat in response.synthesis.key_stats:
            print(f"  - {stat.label}: {stat.value}")

    print("\nSOURCES:")
    for i, source in enumerate(response.sources):
        print(f"  [{i}] {source.title} ({source.domain}) q={source.quality} {source.url}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Research Copilot")
    parser.add_argument("--query", "-q", required=True, help="Research query")
    parser.add_argument("--mode", "-m", default="quick", choices=get_args(ResearchMode))
    parser.add_argument("--doc-title", help="Title of the document the brief is for")
    parser.add_argument("--company", help="Workspace/company name for context")
    parser.add_argument("--no-synthesis", action="store_true", help="Return raw findings only")
    parser.add_argument("--json", action="store_true", help="Print the raw JSON response")

    args = parser.parse_args()

    doc_context = None
    if args.doc_title or args.company:
        doc_context = DocContext(title=args.doc_title, workspace_name=args.company)

    request = ResearchRequest(
        query=args.query,
        mode=args.mode,
        doc_context=doc_context,
        options=ResearchOptions(synthesize=not args.no_synthesis),
    )
    sys.exit(asyncio.run(run_research(request, as_json=args.json)))


if __name__ == "__main__":
    main()
