from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path


def _build_env(repo_root: Path) -> dict[str, str]:
    env = os.environ.copy()
    src_path = str(repo_root / "src")
    existing = env.get("PYTHONPATH")
    env["PYTHONPATH"] = src_path if not existing else f"{src_path}{os.pathsep}{existing}"
    return env


def main() -> int:
    repo_root = Path(__file__).resolve().parents[2]
    example_dir = repo_root / "examples" / "two_level"
    config_path = example_dir / "run_config.toml"

    if not config_path.exists():
        print(f"Missing example config: {config_path}", file=sys.stderr)
        return 1

    subprocess.run(
        [sys.executable, "-m", "hpthermo.cli", "--config", str(config_path)],
        cwd=example_dir,
        env=_build_env(repo_root),
        check=True,
    )

    csv_path = example_dir / "_outputs" / "two_level.csv"
    summary_path = example_dir / "_outputs" / "two_level_summary.json"
    print(f"partition CSV: {csv_path}")
    if summary_path.exists():
        print(f"summary: {summary_path}")
    else:
        print("summary: not generated")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
