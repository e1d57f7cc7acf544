#!/usr/bin/env python3
"""
Test runner for the trivia quiz package.
Runs the unit tests per component, or one category given on the command line.

Usage:
    python -m tests.run_all_tests [category]
"""
import sys
import time
import unittest

CATEGORIES = {
    'models': ['tests.test_models'],
    'client': ['tests.test_trivia_client'],
    'config': ['tests.test_config_manager'],
    'engine': ['tests.test_quiz_engine', 'tests.test_timer_lifecycle'],
    'controller': ['tests.test_quiz_controller'],
}


def load_suite(module_names):
    """Load a suite from dotted test module names."""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()
    for module_name in module_names:
        suite.addTest(loader.loadTestsFromName(module_name))
        print(f"✓ Loaded tests from {module_name}")
    return suite


def run_test_suite(module_names):
    """Run the given test modules and print a summary report."""
    print("=" * 70)
    print("Trivia Quiz - Test Suite")
    print("=" * 70)

    suite = load_suite(module_names)
    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout, buffer=True)

    start_time = time.time()
    result = runner.run(suite)
    end_time = time.time()

    total_tests = result.testsRun
    failures = len(result.failures)
    errors = len(result.errors)
    skipped = len(result.skipped)
    passed = total_tests - failures - errors - skipped

    print("\n" + "=" * 70)
    print("Test Summary Report")
    print("=" * 70)
    print(f"Total Tests Run: {total_tests}")
    print(f"Passed: {passed}")
    print(f"Failed: {failures}")
    print(f"Errors: {errors}")
    print(f"Skipped: {skipped}")
    print(f"Success Rate: {(passed/total_tests)*100:.1f}%" if total_tests > 0 else "N/A")
    print(f"Execution Time: {end_time - start_time:.2f} seconds")

    return result.wasSuccessful()


if __name__ == '__main__':
    if len(sys.argv) > 1:
        category = sys.argv[1]
        if category not in CATEGORIES:
            print(f"Unknown category: {category}")
            print(f"Available categories: {', '.join(CATEGORIES)}")
            sys.exit(1)
        modules = CATEGORIES[category]
    else:
        modules = [name for names in CATEGORIES.values() for name in names]

    sys.exit(0 if run_test_suite(modules) else 1)
