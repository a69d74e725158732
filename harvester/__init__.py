"""
LinkedIn Harvester Application Package

This package contains the core application modules:
- api: Public JSON API
- auth: Supabase authentication
- core: Session state and scrape orchestration
- db: Database client and models
- services: Apify client, profile fetching, jobs and API keys
- worker: Background scraping tasks
- tests: Test suites
"""
