"""Exceptions raised by pool operations"""
