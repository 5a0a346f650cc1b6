# SPDX-License-Identifier: Apache-2.0

"""
HemoLink - blood donation coordination backend.
"""

__version__ = "1.0.0"
