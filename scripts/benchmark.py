import argparse
import asyncio
import os
import logging
import warnings
import sys
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

# Ensure repo root is on sys.path so `import authenticity` works when running as a script.
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from authenticity import InputDecodeError, classify  # noqa: E402

IMG_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".heic"}

# Ground-truth folder names -> verdict label
LABEL_MARKERS = {
    "ai": "ai_generated",
    "ai_generated": "ai_generated",
    "aiartdata": "ai_generated",
    "ai_modified": "ai_modified",
    "edited": "ai_modified",
    "original": "original",
    "real": "original",
    "realart": "original",
}


@dataclass
class SampleResult:
    path: str
    label: str
    predicted: str
    confidence: int
    fused_label: str
    fused_confidence: int
    oracle_source: str
    rules: List[str] = field(default_factory=list)

    @property
    def definitive(self) -> bool:
        return self.predicted != "uncertain"

    @property
    def correct(self) -> bool:
        return self.predicted == self.label


def infer_label_from_path(path: str) -> Optional[str]:
    """Infer ground truth label from folder names (closest folder wins)."""
    parts = [p.lower() for p in os.path.normpath(path).split(os.sep)[:-1]]
    for part in reversed(parts):
        if part in LABEL_MARKERS:
            return LABEL_MARKERS[part]
    return None


def iter_image_files(root: str) -> List[str]:
    out = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for fn in filenames:
            if os.path.splitext(fn)[1].lower() in IMG_EXTS:
                out.append(os.path.join(dirpath, fn))
    return sorted(out)


async def run_one(path: str) -> Optional[SampleResult]:
    label = infer_label_from_path(path)
    if not label:
        return None
    with open(path, "rb") as f:
        data = f.read()
    try:
        verdict = await classify(data, os.path.basename(path))
    except InputDecodeError as e:
        print(f"[SKIP] {path}: {e}")
        return None
    d = verdict.debug_scores
    return SampleResult(
        path=path,
        label=label,
        predicted=verdict.label,
        confidence=verdict.confidence,
        fused_label=d.fused_label,
        fused_confidence=d.fused_confidence,
        oracle_source=verdict.oracle.source,
        rules=list(d.applied_rules),
    )


def summarize(results: List[SampleResult], root: str) -> None:
    total = len(results)
    definitive = [r for r in results if r.definitive]
    correct = [r for r in definitive if r.correct]
    wrong = [r for r in definitive if not r.correct]
    uncertain = total - len(definitive)

    print("=== Benchmark Report ===")
    print("Root:", root)
    print(f"Samples: {total}")
    print(f"Uncertain%: {uncertain/total*100:.2f}% ({uncertain}/{total})")
    if definitive:
        print(f"Precision on definitive verdicts: {len(correct)/len(definitive)*100:.2f}% ({len(correct)}/{len(definitive)})")
    print(f"Oracle fallbacks: {sum(1 for r in results if r.oracle_source == 'fallback')}")
    print("")

    print("Confusion (truth -> predicted):")
    confusion = Counter((r.label, r.predicted) for r in results)
    for (truth, predicted), n in sorted(confusion.items()):
        print(f"  {n:>4}  {truth} -> {predicted}")

    print("")
    print("Rules fired:")
    for rule, n in Counter(rule for r in results for rule in r.rules).most_common():
        print(f"  {n:>4}  {rule}")

    print("")
    print("Wrong definitive verdicts (first 10):")
    for r in wrong[:10]:
        print(f"- {r.path}")
        print(f"  label={r.label} predicted={r.predicted}({r.confidence}) fused={r.fused_label}({r.fused_confidence}) rules={r.rules}")


async def main():
    ap = argparse.ArgumentParser(description="Run the authenticity engine over a labeled image folder.")
    ap.add_argument(
        "--root",
        default=os.path.expanduser(os.getenv("AUTHENTICITY_DATASETS_ROOT", "tests/data")),
        help="Dataset root folder (or set AUTHENTICITY_DATASETS_ROOT)",
    )
    ap.add_argument("--limit", type=int, default=0, help="Limit number of samples (0 = no limit)")
    ap.add_argument("--verbose", action="store_true", help="Show engine logs")
    args = ap.parse_args()

    load_dotenv()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    warnings.filterwarnings("ignore", category=UserWarning)

    root = os.path.abspath(args.root)
    files = iter_image_files(root)
    if args.limit and args.limit > 0:
        files = files[: args.limit]

    results: List[SampleResult] = []
    for p in files:
        r = await run_one(p)
        if r:
            results.append(r)

    if not results:
        print("No labeled samples found under:", root)
        return
    summarize(results, root)


if __name__ == "__main__":
    asyncio.run(main())
