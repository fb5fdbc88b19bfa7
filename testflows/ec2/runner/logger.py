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
import copy
import logging
import logging.config

logger = logging.getLogger("testflows.ec2.runner")


class StdoutHandler(logging.StreamHandler):
    """Stdout handler that keeps multi-line messages
    aligned in the GitHub Actions job log."""

    def format(self, record):
        text = super(StdoutHandler, self).format(record)
        lines = text.splitlines()
        if len(lines) > 1:
            text = "\n".join([lines[0]] + [f"  {line}" for line in lines[1:]])
        return text


class LoggerAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        if kwargs.get("extra") is None:
            kwargs["extra"] = self.extra
        else:
            extra = {}
            for k, v in self.extra.items():
                extra[k] = kwargs["extra"].get(k) or v
            kwargs["extra"] = extra

        return msg, kwargs


logger = LoggerAdapter(
    logger,
    {
        "label": "-",
        "instance_id": "-",
    },
)

#: default logger configuration
default_config = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "stdout": {
            "format": "%(asctime)s %(message)s",
            "datefmt": "%H:%M:%S",
        },
    },
    "handlers": {
        "stdout": {
            "level": "INFO",
            "formatter": "stdout",
            "class": "testflows.ec2.runner.logger.StdoutHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "testflows.ec2.runner": {
            "level": "INFO",
            "handlers": ["stdout"],
        }
    },
}


def configure(config, level=logging.INFO):
    """Apply logging configuration."""
    level = logging.getLevelName(level)

    logger_config = config.logger_config
    if logger_config is None:
        logger_config = copy.deepcopy(default_config)

        for handler in logger_config["handlers"].values():
            handler["level"] = level

        logger_config["loggers"]["testflows.ec2.runner"]["level"] = level

    logging.config.dictConfig(logger_config)
