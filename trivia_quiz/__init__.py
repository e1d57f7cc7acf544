"""
Trivia quiz session core: provider client, session engine and countdown timer.
"""
