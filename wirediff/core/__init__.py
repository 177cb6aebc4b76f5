"""Scenario model, diff engine, harness and corpus builder"""
