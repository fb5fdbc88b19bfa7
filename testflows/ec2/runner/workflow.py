# Copyright 2025 Katteli Inc.
# TestFlows.com Open-Source Software Testing Framework (http://testflows.com)
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""GitHub Actions workflow commands."""
import os
import sys


def escape(value: str):
    """Escape workflow command data."""
    return str(value).replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def set_output(name: str, value: str):
    """Set step output parameter."""
    output_file = os.getenv("GITHUB_OUTPUT")

    if output_file:
        with open(output_file, "a", encoding="utf-8") as f:
            f.write(f"{name}={value}\n")
    else:
        sys.stdout.write(f"::set-output name={name}::{escape(value)}\n")
        sys.stdout.flush()


def set_failed(message: str):
    """Report step failure as an error annotation."""
    sys.stdout.write(f"::error::{escape(message)}\n")
    sys.stdout.flush()
