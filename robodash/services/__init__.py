# Service layer for the robot operator dashboard
# - robot_client:  async HTTP client for the robot backend (never raises, returns FetchResult)
# - polling_cache: reference-counted, single-flight polling of backend resources
# - trajectory:    pose samples -> screen-space path and heading pointer
# - commands:      direction -> velocity translation and single-flight command dispatch
