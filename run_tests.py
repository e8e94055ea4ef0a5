#!/usr/bin/env python3
"""Test runner that checks dependencies and runs each test module on its own."""

import shutil
import subprocess
import sys
import os
import time
from pathlib import Path
from datetime import datetime

TEST_FILES = [
    'tests/test_diff_parser.py',
    'tests/test_changelog_parser.py',
    'tests/test_changelog_backscan.py',
    'tests/test_cross_check.py',
    'tests/test_editor_temps.py',
    'tests/test_vc_backends.py',
    'tests/test_dwim_config.py',
    'tests/test_git_operations.py',
    'tests/test_vc_dwim.py',
]


def print_header(title):
    """Print a formatted header."""
    print("\n" + "=" * 80)
    print(f" {title}")
    print("=" * 80)


def print_section(title):
    """Print a formatted section header."""
    print(f"\n{'─' * 60}")
    print(f" {title}")
    print("─" * 60)


def check_dependencies():
    """Check that the Python packages and the git executable are available."""
    print_section("🔍 Checking Dependencies")

    required_modules = [
        ('git', 'GitPython'),
        ('pytest', 'pytest')
    ]

    missing = []
    for module, package in required_modules:
        try:
            __import__(module)
            print(f"   ✅ {package} - OK")
        except ImportError:
            print(f"   ❌ {package} - MISSING")
            missing.append(package)

    # The integration tests drive a real git binary.
    if shutil.which('git'):
        print("   ✅ git executable - OK")
    else:
        print("   ❌ git executable - MISSING")
        missing.append('git')

    if missing:
        print(f"\n❌ Missing dependencies: {', '.join(missing)}")
        return False

    print("\n✅ All dependencies found!")
    return True


def run_pytest(target, project_root, capture=True):
    """Run pytest on TARGET and return the completed process."""
    env = os.environ.copy()
    env['PYTHONPATH'] = str(project_root)

    cmd = [
        sys.executable, '-m', 'pytest',
        target,
        '-v', '--tb=short', '--no-header',
        '--disable-warnings'
    ]
    return subprocess.run(
        cmd,
        env=env,
        cwd=project_root,
        capture_output=capture,
        text=True,
        timeout=120
    )


def run_individual_test(test_file, project_root):
    """Run a single test file, showing the tail of its output on failure."""
    print(f"\n🔄 Running {test_file}...")
    print("─" * 40)

    start_time = time.time()
    try:
        result = run_pytest(test_file, project_root)
    except subprocess.TimeoutExpired:
        print(f"   ⏰ {test_file} - TIMEOUT (120s)")
        return False

    duration = time.time() - start_time

    if result.returncode == 0:
        print(f"   ✅ {test_file} - PASSED ({duration:.2f}s)")
        return True

    print(f"   ❌ {test_file} - FAILED ({duration:.2f}s)")
    if result.stdout:
        print("   📝 Output:")
        for line in result.stdout.strip().split('\n')[-15:]:
            if line.strip() and not line.startswith('='):
                print(f"      {line}")
    if result.stderr:
        print("   🔥 Errors:")
        for line in result.stderr.strip().split('\n')[:10]:
            if line.strip():
                print(f"      {line}")
    return False


def main():
    """Main test runner function."""
    print_header("🧪 vc-dwim Test Runner")
    print(f"🕐 Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    project_root = Path(__file__).parent.absolute()
    os.chdir(project_root)

    if not check_dependencies():
        print("\n❌ Please install missing dependencies first!")
        sys.exit(1)

    # python run_tests.py tests/test_vc_dwim.py::TestCommitMode
    if len(sys.argv) > 1:
        print_section(f"🎯 Running Specific Test: {sys.argv[1]}")
        sys.exit(run_pytest(sys.argv[1], project_root, capture=False).returncode)

    print_section("🧪 Running Tests Individually")
    results = [(test_file, run_individual_test(test_file, project_root)) for test_file in TEST_FILES]

    print_section("📊 TEST SUMMARY")
    passed = sum(1 for _, success in results if success)
    failed = len(results) - passed

    for test_file, success in results:
        status = "✅ PASSED" if success else "❌ FAILED"
        print(f"   {status} - {test_file}")

    print(f"\n📈 Summary: {passed} passed, {failed} failed")
    if failed == 0:
        print("🎉 ALL TESTS PASSED!")
    else:
        print("⚠️   Some tests failed. To run one of them:")
        print("python run_tests.py tests/test_vc_dwim.py::TestCommitMode")

    sys.exit(0 if failed == 0 else 1)


if __name__ == '__main__':
    main()
