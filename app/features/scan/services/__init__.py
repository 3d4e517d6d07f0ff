"""
Scan Services

Organized by responsibility:

1. browser/ - The Selenium-backed browsing session
   - browsing_session.py: navigation, settle waits, device emulation, element
     resolution and axe-core injection

2. discovery/ - URL enumeration
   - url_discovery.py: bounded same-host crawl run when a scan is created

3. steps/ - Pre-scan automation
   - selectors.py: element-location strategies
   - step_runner.py: replays Click / InputText / SelectValue / Navigate steps

4. analysis/ - Scoring
   - score.py: pass / violation percentage

5. scan/ - Running and storing scans
   - scan_executor.py: one scan request end to end
   - scan_store.py: persistence helpers
   - scan_service.py: create, batch-run, edit, delete and read back

6. orchestration/ - Scheduling
   - scheduler.py: schedule upsert and the expired-scan sweep

7. device/ - Device configurations used for emulation
"""
