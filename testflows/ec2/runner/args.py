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
import os
import json

from argparse import ArgumentTypeError

modes = ("start", "stop")


def mode_type(v):
    """Mode argument type."""
    v = v.strip().lower()
    if v not in modes:
        raise ArgumentTypeError(f"wrong mode {v}, allowed values: {', '.join(modes)}")
    return v


def path_type(v, check_exists=True):
    """Path argument type."""
    try:
        v = os.path.abspath(os.path.expanduser(v))
        if check_exists:
            assert os.path.exists(v), f"{v} does not exist"
    except Exception as e:
        raise ArgumentTypeError(str(e))
    return v


def count_type(v):
    """Count argument type."""
    try:
        v = int(v)
    except ValueError:
        raise ArgumentTypeError(f"{v} is not an integer")
    if not v >= 1:
        raise ArgumentTypeError(f"{v} must be >= 1")
    return v


def repository_type(v):
    """GitHub repository argument type. Example: owner/repo"""
    try:
        owner, repo = v.strip().split("/")
        assert owner and repo
    except (ValueError, AssertionError):
        raise ArgumentTypeError(f"invalid repository {v}, must be owner/repo")
    return f"{owner}/{repo}"


def document_type(v):
    """JSON document argument type.
    Empty value is treated as not specified."""
    if v is None or not v.strip():
        return None
    try:
        return json.loads(v)
    except json.JSONDecodeError as e:
        raise ArgumentTypeError(f"invalid JSON {v}: {e}")


def ec2_params_type(v):
    """Raw EC2 RunInstances parameters argument type."""
    v = document_type(v)
    if v is not None and not isinstance(v, dict):
        raise ArgumentTypeError(f"ec2 params must be an object, got {v}")
    return v


def tags_type(v):
    """AWS resource tags argument type.
    Example: [{"Key": "Name", "Value": "ec2-runner"}]"""
    v = document_type(v)
    if v is None:
        return []
    if not isinstance(v, list):
        raise ArgumentTypeError(f"tags must be a list, got {v}")
    for i, tag in enumerate(v):
        if not isinstance(tag, dict) or set(tag) != {"Key", "Value"}:
            raise ArgumentTypeError(f"tag[{i}] {tag} must have Key and Value")
    return v


def config_type(v):
    """Program configuration file type."""
    from .config import parse_config

    v = path_type(v)
    try:
        return parse_config(v)
    except Exception as e:
        raise ArgumentTypeError(str(e))
