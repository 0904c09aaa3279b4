#!/usr/bin/env python3
"""
Test runner for the Psalm Quiz bot.
Runs all unit tests and integration tests and prints a summary report.

Run from the repository root: python -m tests.run_all_tests [category]
"""
import unittest
import sys
import time


TEST_MODULES = [
    'tests.test_data_manager',
    'tests.test_content_manager',
    'tests.test_config_manager',
    'tests.test_quiz_engine',
    'tests.test_progress_tracker',
    'tests.test_quiz_controller',
    'tests.test_bot_discord_integration',
    'tests.test_integration_comprehensive'
]

CATEGORIES = {
    'unit': [
        'tests.test_data_manager', 'tests.test_content_manager', 'tests.test_config_manager',
        'tests.test_quiz_engine', 'tests.test_progress_tracker', 'tests.test_quiz_controller'
    ],
    'integration': ['tests.test_integration_comprehensive'],
    'bot': ['tests.test_bot_discord_integration'],
    'data': ['tests.test_data_manager', 'tests.test_content_manager'],
    'config': ['tests.test_config_manager'],
    'engine': ['tests.test_quiz_engine'],
    'progress': ['tests.test_progress_tracker'],
    'controller': ['tests.test_quiz_controller']
}


def load_suite(module_names):
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    for module_name in module_names:
        try:
            suite.addTest(loader.loadTestsFromName(module_name))
            print(f"✓ Loaded tests from {module_name}")
        except (ImportError, AttributeError) as e:
            print(f"✗ Failed to load {module_name}: {e}")

    return suite


def run_test_suite(module_names=TEST_MODULES):
    """Run the test suite and print a summary report."""
    print("=" * 70)
    print("Psalm Quiz Bot - Test Suite")
    print("=" * 70)

    suite = load_suite(module_names)

    print("\n" + "=" * 70)
    print("Running Tests...")
    print("=" * 70)

    runner = unittest.TextTestRunner(
        verbosity=2,
        stream=sys.stdout,
        buffer=True
    )

    start_time = time.time()
    result = runner.run(suite)
    end_time = time.time()

    print("\n" + "=" * 70)
    print("Test Summary Report")
    print("=" * 70)

    total_tests = result.testsRun
    failures = len(result.failures)
    errors = len(result.errors)
    skipped = len(result.skipped)
    passed = total_tests - failures - errors - skipped

    print(f"Total Tests Run: {total_tests}")
    print(f"Passed: {passed}")
    print(f"Failed: {failures}")
    print(f"Errors: {errors}")
    print(f"Skipped: {skipped}")
    print(f"Success Rate: {(passed/total_tests)*100:.1f}%" if total_tests > 0 else "N/A")
    print(f"Execution Time: {end_time - start_time:.2f} seconds")

    return failures == 0 and errors == 0


def run_specific_test_category(category):
    """Run tests for a specific category."""
    if category not in CATEGORIES:
        print(f"Unknown category: {category}")
        print(f"Available categories: {', '.join(CATEGORIES.keys())}")
        return False

    print(f"Running {category} tests...")
    return run_test_suite(CATEGORIES[category])


if __name__ == '__main__':
    if len(sys.argv) > 1:
        success = run_specific_test_category(sys.argv[1])
    else:
        success = run_test_suite()

    sys.exit(0 if success else 1)
