from prometheus_client import Counter


notifications_created_total = Counter(
    "notifications_created_total",
    "Total notifications created via API",
)

notifications_cancelled_total = Counter(
    "notifications_cancelled_total",
    "Total notifications cancelled by their recipient",
)

dispatch_scans_total = Counter(
    "notification_dispatch_scans_total",
    "Total dispatch scan cycles",
)

dispatch_tick_errors_total = Counter(
    "notification_dispatch_tick_errors_total",
    "Total dispatch ticks abandoned because of an error",
)

notifications_sent_total = Counter(
    "notifications_sent_total",
    "Total successful notification deliveries",
)

notifications_failed_total = Counter(
    "notifications_failed_total",
    "Total failed notification delivery attempts",
)

notifications_skipped_total = Counter(
    "notifications_skipped_total",
    "Total due notifications skipped because they left pending before delivery",
)
