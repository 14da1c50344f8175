from __future__ import annotations

import argparse
import asyncio
import csv
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from ..sim.core.config import SimulationConfig, load_config, read_config_file
from ..sim.core.orchestrator import EmbedFn, GenerateFn, TurnOrchestrator
from ..sim.types.events import AgentJoined, AgentLeft, AgentMessage, Completed, Failed, Telemetry
from .providers import OpenAIChatGenerator, ScriptedGenerator

logger = logging.getLogger(__name__)

_TELEMETRY_HEADER = [
    "turn",
    "active_count",
    "clusters",
    "mean_cluster_size",
    "largest_cluster",
    "messages",
    "consensus_count",
    "best_support",
    "similarity",
]


def _format_telemetry_row(event: Telemetry) -> list[object]:
    metrics = event.metrics
    best_support = max((entry.support for entry in metrics.consensus), default=0.0)
    return [
        metrics.turn,
        metrics.active_count,
        len(metrics.cluster_sizes),
        f"{metrics.mean_cluster_size:.4f}",
        metrics.cluster_sizes[0] if metrics.cluster_sizes else 0,
        metrics.messages,
        len(metrics.consensus),
        f"{best_support:.4f}",
        "" if metrics.similarity is None else f"{metrics.similarity:.4f}",
    ]


async def run_simulation(
    config: SimulationConfig,
    generate: GenerateFn,
    embed: Optional[EmbedFn] = None,
    events_out: Optional[TextIO] = None,
    telemetry_path: Optional[Path] = None,
) -> Dict[str, Any]:
    orchestrator = TurnOrchestrator(config, generate, embed=embed)
    summary: Dict[str, Any] = {
        "seed": config.seed,
        "goal": config.conversation.goal,
        "turns": 0,
        "messages": 0,
        "joins": 0,
        "leaves": 0,
        "consensus": [],
        "outcome": None,
        "error": None,
    }
    csv_file = None
    writer = None
    if telemetry_path:
        csv_file = Path(telemetry_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_TELEMETRY_HEADER)
    try:
        async for event in orchestrator.run():
            if events_out is not None:
                events_out.write(json.dumps(event.to_payload()) + "\n")
            if isinstance(event, AgentMessage):
                summary["messages"] += 1
            elif isinstance(event, AgentJoined) and event.turn > 0:
                summary["joins"] += 1
            elif isinstance(event, AgentLeft):
                summary["leaves"] += 1
            elif isinstance(event, Telemetry):
                summary["turns"] = event.metrics.turn
                summary["consensus"].extend(
                    {"turn": event.metrics.turn, **dataclasses.asdict(entry)} for entry in event.metrics.consensus
                )
                if writer:
                    writer.writerow(_format_telemetry_row(event))
            elif isinstance(event, Completed):
                summary["outcome"] = event.reason
            elif isinstance(event, Failed):
                summary["outcome"] = "failed"
                summary["error"] = event.message
    finally:
        if csv_file:
            csv_file.close()
    summary["state"] = orchestrator.state.value
    return summary


def build_provider(name: str, config: SimulationConfig, base_url: Optional[str] = None):
    if name == "scripted":
        return ScriptedGenerator(seed=config.seed, vote=config.conversation.voting)
    if name == "openai":
        kwargs: Dict[str, Any] = {"timeout": config.conversation.generation_timeout_seconds}
        if base_url:
            kwargs["base_url"] = base_url
        return OpenAIChatGenerator(config.conversation.model, **kwargs)
    raise ValueError(f"unknown provider {name!r}")


def run_headless(
    config: SimulationConfig,
    events_path: Optional[Path] = None,
    telemetry_path: Optional[Path] = None,
    summary_path: Optional[Path] = None,
    provider: str = "scripted",
    base_url: Optional[str] = None,
) -> Dict[str, Any]:
    generator = build_provider(provider, config, base_url=base_url)

    async def _run() -> Dict[str, Any]:
        events_file = Path(events_path).open("w") if events_path else None
        try:
            return await run_simulation(
                config,
                generator,
                embed=generator.embed,
                events_out=events_file,
                telemetry_path=telemetry_path,
            )
        finally:
            if events_file:
                events_file.close()
            if isinstance(generator, OpenAIChatGenerator):
                await generator.aclose()

    summary = asyncio.run(_run())
    summary["provider"] = provider
    if summary_path:
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return summary


def _build_config(args: argparse.Namespace) -> SimulationConfig:
    raw: Dict[str, Any] = {}
    if args.config:
        raw = read_config_file(args.config)
    if args.preset:
        raw["preset"] = args.preset
    overrides = {
        "seed": args.seed,
        "maxTurns": args.turns,
        "agentCount": args.agents,
        "goal": args.goal,
        "model": args.model,
    }
    raw.update({key: value for key, value in overrides.items() if value is not None})
    if args.no_delay:
        raw["turnDelayMs"] = 0
    if args.similarity:
        raw["embeddingSimilarity"] = True
    return load_config(raw)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Headless flocking discussion simulation")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--preset", default=None, help="Named parameter preset")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--turns", type=int, default=None)
    parser.add_argument("--agents", type=int, default=None)
    parser.add_argument("--goal", default=None)
    parser.add_argument("--model", default=None)
    parser.add_argument("--provider", choices=["scripted", "openai"], default="scripted")
    parser.add_argument("--base-url", default=None, help="OpenAI-compatible API base URL")
    parser.add_argument("--events", type=Path, default=None, help="JSON-lines file for the event stream")
    parser.add_argument("--telemetry-csv", type=Path, default=None, help="CSV file for per-turn telemetry")
    parser.add_argument("--summary", type=Path, default=None, help="JSON file for the run summary")
    parser.add_argument("--no-delay", action="store_true", help="Disable the pacing delay between messages")
    parser.add_argument("--similarity", action="store_true", help="Track embedding similarity in telemetry")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = _build_config(args)
    summary = run_headless(
        config,
        events_path=args.events,
        telemetry_path=args.telemetry_csv,
        summary_path=args.summary,
        provider=args.provider,
        base_url=args.base_url,
    )
    json.dump(summary, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 1 if summary["outcome"] == "failed" else 0


if __name__ == "__main__":
    sys.exit(main())
