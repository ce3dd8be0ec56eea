"""Core scheduling, configuration and orchestration"""
