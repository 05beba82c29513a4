"""
Exception hierarchy for Inkpost builds.

Every failure during a build is fatal. Exceptions carry the offending path
(and field, where there is one) so a failed build can be diagnosed from the
message alone.
"""


class InkpostError(Exception):
    """Base class for all Inkpost errors."""


class ContentLoadError(InkpostError):
    """A content file could not be turned into a ContentSource."""

    def __init__(self, path, message):
        self.path = path
        super().__init__(f"{message}\n  Path: {path}")


class ContentIOError(ContentLoadError):
    def __init__(self, path, reason):
        self.reason = reason
        super().__init__(path, f"Failed to read content\n  Reason: {reason}")


class MalformedFenceError(ContentLoadError):
    def __init__(self, path):
        super().__init__(path, "Invalid front matter fence\n  Expected: YAML block between '---' lines")


class FrontMatterParseError(ContentLoadError):
    def __init__(self, path, reason, field=None):
        self.reason = reason
        self.field = field
        message = "Front matter parse error"
        if field:
            message += f"\n  Field: {field}"
        super().__init__(path, f"{message}\n  Reason: {reason}")


class MissingFieldError(ContentLoadError):
    def __init__(self, path, field):
        self.field = field
        super().__init__(path, f"Missing required front matter field\n  Field: {field}")


class ConfigError(InkpostError):
    """Site configuration or theme manifest could not be loaded."""

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Configuration error\n  Path: {path}\n  Reason: {reason}")


class ProjectNotFoundError(ConfigError):
    def __init__(self, path):
        super().__init__(path, "No inkpost.yml, inkpost.yaml or inkpost.json found")


class ThemeError(ConfigError):
    pass


class TemplateRenderError(InkpostError):
    def __init__(self, template, reason):
        self.template = template
        self.reason = reason
        super().__init__(f"Template error\n  Template: {template}\n  Reason: {reason}")


class OutputError(InkpostError):
    """Writing or copying into the output directory failed."""

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Output error\n  Path: {path}\n  Reason: {reason}")
