"""
Pre-generate narration for every document in the content directory.

Usage:
    narrator-pregenerate            # Generate with confirmation
    narrator-pregenerate --dry-run  # Preview only, no provider calls
    narrator-pregenerate --force    # Skip the confirmation prompt
"""

import argparse
import asyncio
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass

from narrator.services.narration.documents import DocumentSource
from narrator.services.narration.orchestrator import NarrationOrchestrator
from narrator.shared.config import config
from narrator.shared.models import DocumentStatus
from narrator.shared.utils import format_time, setup_logging

logger = setup_logging("narration-pregenerate")


@dataclass
class GenerationResult:
    slug: str
    status: str  # cached | generated | error
    characters: int = 0
    duration: float = 0.0
    audio_seconds: float = 0.0
    error: str | None = None


def format_chars(chars: int) -> str:
    if chars >= 1000:
        return f"{chars / 1000:.1f}k"
    return str(chars)


def format_cost(chars: int, cost_per_1k: float | None = None) -> str:
    rate = cost_per_1k if cost_per_1k is not None else config.get_narration_value("pregenerate.cost_per_1k_chars", 0.15)
    cost = chars / 1000 * rate
    if cost < 0.01:
        return "<$0.01"
    return f"${cost:.2f}"


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    return f"{seconds:.1f}s"


def ask_confirmation(message: str) -> bool:
    try:
        answer = input(f"  {message} (y/N) ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


class Pregenerator:
    """Analyze documents, then synthesize the ones missing from the cache."""

    def __init__(
        self,
        orchestrator: NarrationOrchestrator,
        confirm: Callable[[str], bool] = ask_confirmation,
        pause_between_requests: float | None = None,
    ):
        self.orchestrator = orchestrator
        self.confirm = confirm
        self.pause_between_requests = (
            pause_between_requests
            if pause_between_requests is not None
            else config.get_narration_value("pregenerate.pause_between_requests", 0.5)
        )

    async def analyze(self) -> list[DocumentStatus]:
        docs = []
        for segments in self.orchestrator.documents.list_documents():
            try:
                docs.append(await self.orchestrator.inspect(segments))
            except Exception as e:
                print(f"  ✗ Error analyzing {'/'.join(segments)}: {e}")
        return docs

    async def remaining_quota(self) -> int | None:
        try:
            quota = await self.orchestrator.tts_service.get_quota()
        except Exception as e:
            logger.warning(f"Could not fetch quota info: {e}")
            return None
        return quota.remaining_characters if quota is not None else None

    async def generate_document(self, doc: DocumentStatus) -> GenerationResult:
        if doc.cached:
            return GenerationResult(slug=doc.slug, status="cached", characters=doc.characters)

        started = time.perf_counter()
        try:
            narration = await self.orchestrator.generate(doc.slug)
        except Exception as e:
            print(f"  ✗ {doc.slug}")
            print(f"    {e}")
            return GenerationResult(slug=doc.slug, status="error", error=str(e))

        duration = time.perf_counter() - started
        audio_seconds = max((t.end for t in narration.timestamps), default=0.0)
        print(
            f"  ✓ {doc.slug} ({format_chars(doc.characters)} · {format_time(audio_seconds)} audio"
            f" · {format_duration(duration)})"
        )
        return GenerationResult(
            slug=doc.slug,
            status="generated",
            characters=doc.characters,
            duration=duration,
            audio_seconds=audio_seconds,
        )

    async def run(self, dry_run: bool = False, force: bool = False) -> int:
        """Run the pre-generation workflow and return the process exit code."""
        if dry_run:
            print("  [DRY RUN] No API calls will be made\n")

        docs = await self.analyze()
        if not docs:
            print("  No documents found\n")
            return 0

        quota_remaining = None if dry_run else await self.remaining_quota()
        self.print_analysis(docs, quota_remaining)

        to_generate = [doc for doc in docs if not doc.cached]
        total_chars = sum(doc.characters for doc in to_generate)

        if dry_run:
            print("  [DRY RUN] Exiting without generating\n")
            return 0

        if not to_generate:
            print("  ✓ All documents already cached\n")
            return 0

        if quota_remaining is not None and total_chars > quota_remaining:
            print("  Aborting: insufficient quota\n")
            return 1

        if not force:
            question = (
                f"Generate {len(to_generate)} documents using "
                f"{format_chars(total_chars)} characters ({format_cost(total_chars)})?"
            )
            if not self.confirm(question):
                print("\n  Cancelled\n")
                return 0

        started = time.perf_counter()
        results = []
        for doc in docs:
            result = await self.generate_document(doc)
            results.append(result)
            if result.status == "generated" and self.pause_between_requests > 0:
                await asyncio.sleep(self.pause_between_requests)

        self.print_summary(results, time.perf_counter() - started)
        return 1 if any(result.status == "error" for result in results) else 0

    @staticmethod
    def print_analysis(docs: list[DocumentStatus], quota_remaining: int | None) -> None:
        to_generate = [doc for doc in docs if not doc.cached]
        total_chars = sum(doc.characters for doc in to_generate)

        print("\n  Document Analysis")
        print("  " + "─" * 37)
        for doc in docs:
            status = "cached " if doc.cached else "pending"
            print(f"  {status} {doc.slug} ({format_chars(doc.characters)} chars)")
        print("  " + "─" * 37)
        print(f"  Cached: {len(docs) - len(to_generate)} documents")
        print(f"  To generate: {len(to_generate)} documents")

        if to_generate:
            print(f"  Characters: {format_chars(total_chars)} ({format_cost(total_chars)})")
            if quota_remaining is None:
                print("  Quota remaining: unknown")
            else:
                print(f"  Quota remaining: {format_chars(quota_remaining)}")
                if total_chars > quota_remaining:
                    print(
                        f"\n  ⚠ Not enough quota! Need {format_chars(total_chars)}, "
                        f"have {format_chars(quota_remaining)}"
                    )
        print()

    @staticmethod
    def print_summary(results: list[GenerationResult], total_time: float) -> None:
        counts = {status: sum(1 for r in results if r.status == status) for status in ("cached", "generated", "error")}
        parts = []
        if counts["cached"]:
            parts.append(f"{counts['cached']} cached")
        if counts["generated"]:
            parts.append(f"{counts['generated']} generated")
        if counts["error"]:
            parts.append(f"{counts['error']} failed")
        print("\n  " + " · ".join(parts))

        generated_chars = sum(r.characters for r in results if r.status == "generated")
        if generated_chars:
            print(f"  {format_chars(generated_chars)} characters used ({format_cost(generated_chars)})")
            audio_seconds = sum(r.audio_seconds for r in results if r.status == "generated")
            print(f"  {format_time(audio_seconds)} of narration audio")
        print(f"  {format_duration(total_time)}\n")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Pre-generate narration audio for all documents.")
    parser.add_argument("-n", "--dry-run", action="store_true", help="Preview only, no API calls")
    parser.add_argument("-f", "--force", action="store_true", help="Skip the confirmation prompt")
    parser.add_argument("--content-dir", default=None, help="Content directory (defaults to CONTENT_DIR)")
    args = parser.parse_args(argv)

    print(f"\n  Narration pre-generation ({config.get('tts_driver')})")
    print(f"  Model: {config.get('elevenlabs_model_id')} | Voice: {config.get('elevenlabs_voice_id')}\n")

    if not args.dry_run and not config.get("elevenlabs_api_key"):
        print("  ⚠ ELEVENLABS_API_KEY not set\n")
        return 1

    orchestrator = NarrationOrchestrator(documents=DocumentSource(args.content_dir))
    return asyncio.run(Pregenerator(orchestrator).run(dry_run=args.dry_run, force=args.force))


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
