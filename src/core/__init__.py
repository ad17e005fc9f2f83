"""Core domain package for feedrelay.

Core owns the delivery pipeline (ids, item lifecycle, duplicate checks,
per-item processing, batch scanning) without any feed-, channel- or
filesystem-specific code. Adapters plug in through the ports module.
"""
