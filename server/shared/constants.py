# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

PROJECTS_COLLECTION = "projects"
TASKS_COLLECTION = "tasks"
USERS_COLLECTION = "users"
# Older front-end builds wrote users here instead of "users".
LEGACY_USERS_COLLECTION = "taskManagement"

CREATED_AT_FIELD = "createdAt"
UPDATED_AT_FIELD = "updatedAt"

UNASSIGNED_USER_LABEL = "Unassigned"
UNKNOWN_PROJECT_LABEL = "Unknown"

UPCOMING_DEADLINES_LIMIT = 5
