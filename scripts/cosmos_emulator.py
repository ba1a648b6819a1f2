#!/usr/bin/env python3
"""
Cosmos DB Emulator Runner

Manages the Linux Cosmos DB emulator container and runs the test suites
against it.

Usage:
    python scripts/cosmos_emulator.py [command] [options]

Commands:
    start       - Start the emulator container
    stop        - Stop the emulator container
    status      - Show container and endpoint status
    logs        - Show emulator container logs
    test        - Run integration tests (starts the emulator if needed)
    test-unit   - Run unit tests only (no emulator required)
    demo        - Run the document demo against the emulator
"""

import argparse
import os
import subprocess
import sys
import time
from pathlib import Path
from typing import List, Optional

import requests

EMULATOR_URL = "http://localhost:8081"


class EmulatorRunner:
    """Manages the emulator container and test execution."""

    def __init__(self):
        self.project_root = Path(__file__).parent.parent
        self.compose_file = self.project_root / "docker-compose.emulator.yml"

    def run_command(self, cmd: List[str], capture_output: bool = True, check: bool = True, env=None) -> subprocess.CompletedProcess:
        """Run a command from the project root."""
        print(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=capture_output,
                text=True,
                check=check,
                cwd=self.project_root,
                env=env
            )
        except subprocess.CalledProcessError as e:
            print(f"Command failed with exit code {e.returncode}")
            if e.stderr:
                print(f"Stderr: {e.stderr}")
            raise
        if capture_output and result.stdout:
            print(f"Output: {result.stdout.strip()}")
        return result

    def compose(self, *args: str, capture_output: bool = True) -> subprocess.CompletedProcess:
        return self.run_command(["docker", "compose", "-f", str(self.compose_file), *args], capture_output=capture_output)

    def check_health(self) -> bool:
        """Check whether the emulator endpoint answers.

        The vNext emulator serves plain HTTP and rejects unauthenticated
        requests with 401, which is enough to know it is up.
        """
        try:
            response = requests.get(EMULATOR_URL, timeout=5)
        except requests.RequestException as e:
            print(f"Emulator health check failed: {e}")
            return False
        return response.status_code < 500

    def wait_for_emulator(self, max_retries: int = 90, delay: float = 2.0) -> bool:
        print("Waiting for the Cosmos DB emulator to be ready...")
        for attempt in range(max_retries):
            if self.check_health():
                print("✅ Emulator is ready!")
                return True
            if attempt % 10 == 0:
                print(f"⏳ Attempt {attempt + 1}/{max_retries}: emulator starting...")
            time.sleep(delay)

        print("❌ Emulator failed to start within the expected time")
        return False

    def start(self) -> bool:
        if self.check_health():
            print("✅ Emulator is already running")
            return True
        print("🚀 Starting Cosmos DB emulator container...")
        try:
            self.compose("up", "-d")
        except subprocess.CalledProcessError:
            print("❌ Failed to start emulator container")
            return False
        return self.wait_for_emulator()

    def stop(self) -> bool:
        print("🛑 Stopping Cosmos DB emulator container...")
        try:
            self.compose("down")
        except subprocess.CalledProcessError:
            print("❌ Failed to stop emulator container")
            return False
        return True

    def show_status(self) -> None:
        result = self.compose("ps", "--status", "running", "-q")
        container = "running" if result.stdout.strip() else "stopped"
        health = "healthy" if self.check_health() else "unreachable"
        print("📊 Cosmos DB emulator status:")
        print(f"   Container: {container}")
        print(f"   Endpoint:  {EMULATOR_URL} ({health})")

    def show_logs(self, tail: int) -> None:
        try:
            self.compose("logs", "--tail", str(tail), capture_output=False)
        except subprocess.CalledProcessError:
            print("❌ Failed to retrieve logs")

    def run_tests(self, path: str, verbose: bool = False, pattern: Optional[str] = None) -> bool:
        cmd = [sys.executable, "-m", "pytest", path]
        if verbose:
            cmd.append("-v")
        if pattern:
            cmd.extend(["-k", pattern])
        env = dict(os.environ, COSMOS_EMULATOR_TESTS="1")
        try:
            self.run_command(cmd, capture_output=False, env=env)
        except subprocess.CalledProcessError:
            print(f"❌ Tests in {path} failed")
            return False
        print(f"✅ Tests in {path} passed")
        return True

    def run_demo(self) -> bool:
        try:
            self.run_command([sys.executable, "-m", "cosmosdb_wrapper.demo", "--no-wait"], capture_output=False)
        except subprocess.CalledProcessError:
            return False
        return True


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Cosmos DB emulator runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("command", choices=["start", "stop", "status", "logs", "test", "test-unit", "demo"])
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose test output")
    parser.add_argument("-k", "--pattern", help="Test pattern filter (pytest -k)")
    parser.add_argument("--tail", type=int, default=50, help="Number of log lines to show (default: 50)")
    args = parser.parse_args()

    runner = EmulatorRunner()
    success = True

    try:
        if args.command == "start":
            success = runner.start()
        elif args.command == "stop":
            success = runner.stop()
        elif args.command == "status":
            runner.show_status()
        elif args.command == "logs":
            runner.show_logs(args.tail)
        elif args.command == "test":
            success = runner.start() and runner.run_tests("tests/integration/", args.verbose, args.pattern)
        elif args.command == "test-unit":
            success = runner.run_tests("tests/unit/", args.verbose, args.pattern)
        elif args.command == "demo":
            success = runner.start() and runner.run_demo()

    except KeyboardInterrupt:
        print("\n🛑 Operation cancelled by user")
        success = False

    except Exception as e:
        print(f"❌ Unexpected error: {e}")
        success = False

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
