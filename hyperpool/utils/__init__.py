"""Logging and output helpers"""
