"""DigitSchool academics service.

Grade ledger, cached term averages, orientation bands and PDF report
generation for the DigitSchool platform.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
