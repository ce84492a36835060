"""Template rendering for email notifications using Jinja2.

This module wraps Jinja2 template rendering with strict undefined checking
to catch template errors early. Templates are plain text, so whitespace
control (trim_blocks/lstrip_blocks) is on and autoescaping is off.
"""

import logging
from typing import Any, Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from .models import NotificationTemplateError

logger = logging.getLogger(__name__)

RULE_ALERT_TEMPLATE = "rule_alert_body.txt.j2"
ERROR_REPORT_TEMPLATE = "error_report_body.txt.j2"


class TemplateRenderer:
    """Renders plain-text email bodies using Jinja2.

    Templates live in the sheet_notifier.notifications.email_templates
    package directory and are cached by the Jinja2 environment.
    """

    def __init__(
        self,
        template_dir: str = "email_templates",
        alert_template: str = RULE_ALERT_TEMPLATE,
        error_template: str = ERROR_REPORT_TEMPLATE,
    ):
        """Initialize template renderer with Jinja2 environment.

        Args:
            template_dir: Directory name within sheet_notifier.notifications package
            alert_template: Filename of the rule alert body template
            error_template: Filename of the operator error report template
        """
        self.alert_template_name = alert_template
        self.error_template_name = error_template

        self.env = Environment(
            loader=PackageLoader("sheet_notifier.notifications", template_dir),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

        logger.debug(f"Initialized TemplateRenderer with templates from {template_dir}")

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        """Render a template with the provided context.

        Raises:
            NotificationTemplateError: If template rendering fails
        """
        try:
            template = self.env.get_template(template_name)
            return template.render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e
        except Exception as e:
            error_msg = f"Unexpected error during template rendering: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

    def render_rule_alert(self, context: Dict[str, Any]) -> str:
        """Render the rule alert body (title, rows, send timestamp)."""
        return self.render(self.alert_template_name, context)

    def render_error_report(self, context: Dict[str, Any]) -> str:
        """Render the operator error report body."""
        return self.render(self.error_template_name, context)
