"""Fingerprints, flake estimation, gates and summaries"""
