"""Unit tests for the domain layer, strategies and configuration"""
