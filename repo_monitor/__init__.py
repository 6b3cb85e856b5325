"""
Repo Monitor

A local dashboard service that polls GitHub for a configured list of
repositories, reports CI and activity status, and approves pending
Dependency Dashboard updates.
"""

__version__ = "1.0.0"
__author__ = "Repo Monitor"
__description__ = "GitHub repository status and Dependency Dashboard approvals"
