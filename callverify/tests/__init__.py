"""
Test suite for the call verification toolkit.

- unit: signing, polling, time matching, provider clients, report location
  and the verification flow, all against fakes
- integration: page objects against static report markup in headless Chromium
- e2e: live IVR scenarios against the sandbox and the portal (opt-in)
"""
