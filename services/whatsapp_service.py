import os
import logging
import requests
from typing import Dict, Any, Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)

# Mesmo conjunto de caracteres preservados por encodeURIComponent
_URI_SAFE = "-_.!~*'()"


class WhatsAppService:
    def __init__(self):
        self.api_key = os.getenv("WHATSAPP_API_KEY")
        self.phone_number = os.getenv("WHATSAPP_PHONE_NUMBER")
        self.country_code = os.getenv("WHATSAPP_COUNTRY_CODE", "351")
        self.base_url = "https://graph.facebook.com/v17.0"

    def format_phone(self, phone: Optional[str]) -> Optional[str]:
        """Somente dígitos, com o código do país (Portugal por padrão)"""
        digits = ''.join(ch for ch in (phone or '') if ch.isdigit())
        if not digits:
            return None
        if not digits.startswith(self.country_code):
            digits = self.country_code + digits
        return digits

    def build_link(self, phone: Optional[str], message: str = "") -> Optional[str]:
        """Link wa.me que abre a conversa com a mensagem preenchida"""
        formatted_phone = self.format_phone(phone)
        if not formatted_phone:
            return None
        return f"https://wa.me/{formatted_phone}?text={quote(message, safe=_URI_SAFE)}"

    def send_message(self, phone: str, message: str) -> Dict[str, Any]:
        """
        Enviar mensagem via WhatsApp Business API.

        Sem credenciais configuradas apenas devolve o link wa.me, que o
        atendente abre manualmente.
        """
        link = self.build_link(phone, message)
        if link is None:
            return {
                "success": False,
                "error": "Telefone inválido"
            }

        if not self.api_key or not self.phone_number:
            logger.info("WhatsApp (link manual) para %s", phone)
            return {
                "success": True,
                "status": "manual",
                "link": link
            }

        payload = {
            "messaging_product": "whatsapp",
            "to": self.format_phone(phone),
            "type": "text",
            "text": {
                "body": message
            }
        }

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        try:
            response = requests.post(
                f"{self.base_url}/{self.phone_number}/messages",
                json=payload,
                headers=headers,
                timeout=15
            )
        except requests.RequestException as e:
            logger.error("Erro ao enviar mensagem WhatsApp: %s", e)
            return {
                "success": False,
                "error": str(e),
                "link": link
            }

        if response.status_code == 200:
            result = response.json()
            return {
                "success": True,
                "message_id": result.get("messages", [{}])[0].get("id"),
                "status": "sent",
                "link": link
            }

        logger.error("Erro ao enviar mensagem WhatsApp: %s - %s", response.status_code, response.text)
        return {
            "success": False,
            "error": f"HTTP {response.status_code}",
            "details": response.text,
            "link": link
        }

whatsapp_service = WhatsAppService()
