# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""postgate: session-based authentication in front of a small posts site."""

__version__ = "0.1.0"
