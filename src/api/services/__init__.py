# Service classes holding the SQL behind each router.
