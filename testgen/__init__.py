"""Screenshot-to-test-case generation pipeline"""
