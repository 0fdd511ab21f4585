# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""hexskeleton - hexagonal user-management core.

Credential hashing, token issuance, login recording and the user
management services built around them.
"""

__version__ = "0.1.0"
