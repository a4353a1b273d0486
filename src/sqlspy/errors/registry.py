# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: sqlspy

"""Unified error registry implementation for sqlspy."""

import threading
from typing import Any


class ErrorRegistry:
    """Singleton registry for all error codes and categories in sqlspy."""

    _instance = None
    _lock = threading.RLock()

    def __new__(cls) -> "ErrorRegistry":
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._categories = {}
                instance._codes = {}
                cls._instance = instance
            return cls._instance

    def get_category(self, name: str) -> Any:
        """Get or create a category.

        Args:
            name: The category name

        Returns:
            The ErrorCategory
        """
        with self._lock:
            if name in self._categories:
                return self._categories[name]

            from sqlspy.errors.base import ErrorCategory

            category = ErrorCategory(name)
            self._categories[name] = category
            return category

    def get_code(self, code: str, category_name: str = "INTERNAL") -> Any:
        """Get or create an error code.

        Args:
            code: The error code
            category_name: The category name (defaults to INTERNAL)

        Returns:
            The ErrorCode
        """
        with self._lock:
            key = f"{category_name}.{code}"
            if key in self._codes:
                return self._codes[key]

            category = self.get_category(category_name)

            from sqlspy.errors.base import ErrorCode

            error_code = ErrorCode(code, category)
            self._codes[key] = error_code
            return error_code


# Create a single instance for use throughout the package
registry = ErrorRegistry()
