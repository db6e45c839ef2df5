"""
Natours Client
==============

The browser-side behavior of the signup page, as an async Python client:

    alerts.py   AlertPresenter: one transient success/error alert at a time
    signup.py   SignupSubmitter: posts the signup form, alerts, redirects

The page itself loads static/js/signup.js, which follows the same contract.
"""

from natours.client.alerts import Alert, AlertPresenter
from natours.client.signup import SignupSubmitter

__all__ = ["Alert", "AlertPresenter", "SignupSubmitter"]
