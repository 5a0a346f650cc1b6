# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the HemoLink platform.

This package contains pure business rules with no I/O: eligibility, ranking,
matching policy, request status transitions, inventory rules and
authorization. Services in ``hemolink.services`` apply them against the
document store and the notification gateway.
"""
