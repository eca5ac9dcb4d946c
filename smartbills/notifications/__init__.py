"""Scheduled notification service (store, dispatch worker, scheduler, API).

Reminder requests are persisted as ``pending`` notifications and delivered
by a periodic dispatch tick that records every attempt in the attempt log.
"""
