"""
UI Controller Agent

Provider that drives the admin client: navigation, notifications,
modals, image selection. It performs no I/O; every action queues a
UICommand that the orchestrator relays to the client.
"""

from typing import Any, Dict, List, Optional

from agents.base import BaseAgent
from schemas.plan import AgentType
from schemas.result import StepResult


class UIControllerAgent(BaseAgent):
    """
    Turns plan steps into client-side UI commands.
    """

    agent_type = AgentType.UI_CONTROLLER

    ACTIONS = (
        "navigate_to",
        "upload_images",
        "start_showcase_generation",
        "start_bulk_processing",
        "update_processing_results",
        "update_product_details",
        "show_notification",
        "open_modal",
        "select_images",
        "refresh_page",
    )

    async def execute(self, action: str, params: Dict[str, Any]) -> StepResult:
        handler = getattr(self, f"_{action}", None) if action in self.ACTIONS else None
        if handler is None:
            return StepResult(success=False, message=f"Unknown action: {action}", error="Invalid action")
        try:
            return handler(params)
        except Exception as e:
            return self.format_error(e, action)

    def _navigate_to(self, params: Dict[str, Any]) -> StepResult:
        path = params.get("path")
        if not path:
            return self.format_error("Missing 'path'", "navigate")
        options = params.get("options")
        self.emit_ui_command({"type": "navigate", "path": path, "params": options})
        return self.format_success(f"Navigating to {path}", {"path": path, "params": options})

    def _upload_images(self, params: Dict[str, Any]) -> StepResult:
        image_urls = _url_list(params.get("imageUrls"))
        self.emit_ui_command({"type": "upload_images", "imageUrls": image_urls})
        return self.format_success(f"Added {len(image_urls)} images", {"imageUrls": image_urls})

    def _start_showcase_generation(self, params: Dict[str, Any]) -> StepResult:
        image_urls = _url_list(params.get("imageUrls"))
        self.emit_ui_command({"type": "start_showcase_generation", "imageUrls": image_urls})
        return self.format_success("Started showcase generation", {"imageUrls": image_urls})

    def _start_bulk_processing(self, params: Dict[str, Any]) -> StepResult:
        image_urls = _url_list(params.get("imageUrls"))
        operations = params.get("operations") or []
        self.emit_ui_command({
            "type": "start_bulk_processing",
            "imageUrls": image_urls,
            "operations": operations,
        })
        return self.format_success(
            f"Started bulk processing of {len(image_urls)} images",
            {"imageUrls": image_urls, "operations": operations},
        )

    def _update_processing_results(self, params: Dict[str, Any]) -> StepResult:
        results = params.get("results") or []
        errors = params.get("errors") or []
        self.emit_ui_command({"type": "update_processing_results", "results": results, "errors": errors})
        return self.format_success(
            f"Updated {len(results)} processing results",
            {"count": len(results), "errorCount": len(errors)},
        )

    def _update_product_details(self, params: Dict[str, Any]) -> StepResult:
        details = {key: value for key, value in params.items() if value is not None}
        self.emit_ui_command({"type": "update_product_details", "params": details})
        return self.format_success("Updated product details in editor", details)

    def _show_notification(self, params: Dict[str, Any]) -> StepResult:
        message = params.get("message")
        if not message:
            return self.format_error("Missing 'message'", "show notification")
        variant = params.get("variant") or "info"
        self.emit_ui_command({"type": "notification", "message": message, "variant": variant})
        return self.format_success("Notification shown", {"message": message, "variant": variant})

    def _open_modal(self, params: Dict[str, Any]) -> StepResult:
        modal_type = params.get("modalType")
        if not modal_type:
            return self.format_error("Missing 'modalType'", "open modal")
        self.emit_ui_command({"type": "open_modal", "action": modal_type, "params": params.get("data")})
        return self.format_success(f"Opened {modal_type} modal", {"modalType": modal_type})

    def _select_images(self, params: Dict[str, Any]) -> StepResult:
        image_ids = list(params.get("imageIds") or [])
        self.emit_ui_command({"type": "select_images", "imageIds": image_ids})
        return self.format_success(f"Selected {len(image_ids)} images", {"imageIds": image_ids})

    def _refresh_page(self, params: Dict[str, Any]) -> StepResult:
        data_type: Optional[str] = params.get("dataType")
        self.emit_ui_command({"type": "refresh", "params": {"dataType": data_type} if data_type else None})
        return self.format_success("Page refreshed", {"dataType": data_type})


def _url_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    return [url for url in (value or []) if isinstance(url, str)]
