"""
browser
Automation-engine adapter over Playwright plus the version-keyed session cache.
"""
