import asyncio
import logging
import sys
import argparse
from pathlib import Path
from typing import Optional

from config.config import SystemConfig, load_config
from integrated_proof_system import IntegratedProofSystem
from utils.utils import setup_logging, save_results, PerformanceMonitor, create_performance_report
from zk.arithmetic import modpow
from zk.randomness import EntropySource
from zk.zk_proofs import (
    ZKError,
    ProtocolConfig,
    GROUP_PRESETS,
    get_group_preset,
    prove,
    verify,
    generate_secret_key,
)

logger = logging.getLogger(__name__)


async def run_demo(config: SystemConfig, secret: Optional[int] = None, impostor_rounds: int = 8,
                   source: Optional[EntropySource] = None) -> bool:
    print("=" * 80)
    print("DISCRETE-LOG ZERO-KNOWLEDGE PROOF - DEMONSTRATION")
    print("   Prove knowledge of x with y = g^x mod p without revealing x")
    print("=" * 80)

    group = config.group
    rounds = config.protocol.effective_rounds()
    system = IntegratedProofSystem(config, source=source, reveal_secrets=True)
    await system.initialize()

    print(f"\nGROUP PARAMETERS:")
    print(f"   • Group: {group.name} ({group.bits}-bit prime)")
    print(f"   • Generator g: {group.g}")
    if group.bits < 2048:
        print(f"   • WARNING: toy-sized modulus, insecure outside demonstrations")

    alice = await system.register_prover("alice", secret)
    print(f"\nProver's private key (x): {alice.secret}")
    print(f"Prover's public key (y = g^x mod p): {alice.public_key}")

    # 1. Honest single round
    honest = await system.run_session("alice", rounds=1, label="prover")
    report = honest.reports[0]
    print(f"Proof: {{ h: {report.h}, b: {report.b}, s: {report.s} }}")
    print(f"Verification {'successful' if honest.verified else 'failed'}")

    # 2. Wrong secret against the same public key
    impostor = await system.demonstrate_wrong_secret("alice", rounds=impostor_rounds)
    print(f"\nAttempting verification with wrong x over {impostor.rounds} rounds:")
    for r in impostor.reports:
        if r.b == 1:
            outcome = "succeeded (BAD!)" if r.verified else "failed (as expected)"
        else:
            outcome = "passed (b=0 soundness gap)" if r.verified else "failed"
        print(f"   round {r.round_index}: b={r.b} -> {outcome}")
    # b = 0 rounds pass for any secret; only a passing b = 1 round is a failure
    impostor_caught = not any(r.b == 1 and r.verified for r in impostor.reports)
    if not impostor.verified:
        print(f"   Session REJECTED")
    elif impostor_caught:
        print(f"   Session accepted: no b=1 challenge was drawn (soundness gap)")
    else:
        print(f"   Session ACCEPTED (BAD!)")

    # 3. Amplified honest session
    amplified = await system.run_session("alice", rounds=rounds, label="amplified")
    print(f"\nAmplified session: {amplified.rounds_passed}/{amplified.rounds} rounds passed, "
          f"soundness error {amplified.soundness_error:.3e}")

    print(f"\nSECURITY NOTES:")
    print(f"    One round proves knowledge only with soundness error 1/2")
    print(f"    {rounds} AND-ed rounds give soundness error 2^-{rounds}")
    print(f"    r is drawn fresh from the OS CSPRNG for every round")

    results = system.get_results()
    report_path = config.results_dir / "demo_report.json"
    save_results(results, report_path)

    perf_report = create_performance_report(system.performance_monitor)
    perf_path = config.results_dir / "performance_report.txt"
    perf_path.write_text(perf_report)

    print(f"\nFull results saved to: {report_path}")
    print(f"Performance report: {perf_path}")

    return honest.verified and amplified.verified and impostor_caught


async def run_simulation(config: SystemConfig, rounds: int = 4) -> bool:
    system = IntegratedProofSystem(config)
    await system.initialize()
    await system.register_prover("alice")

    result = await system.run_simulation("alice", rounds=rounds)
    print(f"Simulated transcripts (no secret used): "
          f"{result.rounds_passed}/{result.rounds} verify")
    for r in result.reports:
        print(f"   {{ h: {r.h}, b: {r.b}, s: {r.s} }}")
    return result.verified


def run_benchmark(config: SystemConfig, trials: int = 50) -> bool:
    if not config.enable_benchmarking:
        logger.warning("Benchmarking is disabled in the configuration (enable_benchmarking: false)")
        return False

    monitor = PerformanceMonitor()

    for name, group in GROUP_PRESETS.items():
        x = generate_secret_key(group)
        logger.info(f"Benchmarking group {name} ({group.bits}-bit)")

        for _ in range(trials):
            with monitor.start_operation(f"{name}_modpow"):
                modpow(group.g, x, group.p)

        proofs = []
        for _ in range(trials):
            with monitor.start_operation(f"{name}_prove"):
                proofs.append(prove(x, group.g, group.p))

        all_valid = True
        for y, proof in proofs:
            with monitor.start_operation(f"{name}_verify"):
                all_valid &= verify(y, group.g, group.p, proof)

        if not all_valid:
            logger.error(f"Honest proofs failed verification in group {name}")
            return False

    metrics_path = config.results_dir / "benchmark_metrics.json"
    monitor.save_metrics(metrics_path)
    print(create_performance_report(monitor))
    print(f"Raw metrics saved to: {metrics_path}")
    return True


def build_config(args) -> SystemConfig:
    config = load_config(Path(args.config))

    if args.preset is not None:
        config.group = get_group_preset(args.preset).validate()

    if args.rounds is not None or args.security_bits is not None or args.workers is not None:
        if args.security_bits is not None:
            security_bits = args.security_bits
        elif args.rounds is not None:
            # an explicit round count replaces the configured security target
            security_bits = None
        else:
            security_bits = config.protocol.target_security_bits

        config.protocol = ProtocolConfig(
            rounds=args.rounds if args.rounds is not None else config.protocol.rounds,
            target_security_bits=security_bits,
            parallel_workers=args.workers if args.workers is not None else config.protocol.parallel_workers
        )

    return config


def main():
    parser = argparse.ArgumentParser(
        description='Discrete-Log Zero-Knowledge Proof System')
    parser.add_argument('--mode', choices=['demo', 'benchmark', 'simulate'], default='demo')
    parser.add_argument('--rounds', type=int, default=None,
                        help='Rounds per amplified session')
    parser.add_argument('--security-bits', type=int, default=None,
                        help='Target soundness in bits (overrides --rounds)')
    parser.add_argument('--preset', choices=sorted(GROUP_PRESETS), default=None,
                        help='Group parameter preset')
    parser.add_argument('--secret', type=int, default=None,
                        help='Prover secret x (random when omitted)')
    parser.add_argument('--workers', type=int, default=None,
                        help='Worker threads for independent rounds')
    parser.add_argument('--trials', type=int, default=50,
                        help='Trials per operation in benchmark mode')
    parser.add_argument('--config', type=str,
                        default='config.yaml', help='Config file path')

    args = parser.parse_args()

    try:
        config = build_config(args)
        setup_logging(config.log_level, config.log_dir / "zkp.log")

        if args.mode == 'demo':
            success = asyncio.run(run_demo(config, args.secret))
        elif args.mode == 'simulate':
            success = asyncio.run(run_simulation(config, config.protocol.effective_rounds()))
        else:
            success = run_benchmark(config, args.trials)
    except ZKError as e:
        logger.error(f"Proof system error: {e}")
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
