# Request and response models for the dashboard API, grouped by router.
