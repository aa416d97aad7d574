"""
Exception hierarchy for gitsaver

Copyright 2025 HyperSec

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""


class GitsaverError(Exception):
    """Base class for all gitsaver errors"""


class ConfigurationError(GitsaverError):
    """Raised when the backup configuration is invalid"""


class FatalRunError(GitsaverError):
    """Raised when a backup run cannot even start dispatching transfers"""


class AuthError(FatalRunError):
    """Raised when the host rejects the configured token"""


class ListingError(FatalRunError):
    """Raised when the repository listing cannot be completed"""


class TransferError(GitsaverError):
    """Raised when a single repository could not be backed up"""


class NotFoundError(TransferError):
    """Raised when the host reports a repository or archive as missing"""


class ExtractionError(TransferError):
    """Raised when a downloaded archive cannot be unpacked"""


class TransportError(GitsaverError):
    """Raised when a git clone or fetch command fails"""


class NotificationError(GitsaverError):
    """Raised when a webhook notification could not be delivered"""
