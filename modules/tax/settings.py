"""
Tax Engine Settings

Module-level defaults with environment overrides:

    TAX_DATE_TIMEZONE   Timezone used to turn aware timestamps into calendar
                        dates (default: UTC)
    TAX_REPORT_CURRENCY Display currency for reports (default: BRL)
    TAX_SLOW_REPLAY_MS  Threshold for SLOW warnings on report generation

The tax rule table itself is static code (modules/tax/rules.py).

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import os

DATE_KEY_TIMEZONE = os.getenv('TAX_DATE_TIMEZONE', 'UTC')

REPORT_CURRENCY = os.getenv('TAX_REPORT_CURRENCY', 'BRL')

SLOW_REPLAY_THRESHOLD_MS = float(os.getenv('TAX_SLOW_REPLAY_MS', '1000'))
