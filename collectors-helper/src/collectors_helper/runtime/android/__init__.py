"""Android runtime helpers.

This package intentionally contains *thin* wrappers around adb so that
collectors depend on a small `DeviceShell` surface that tests can fake.
"""
