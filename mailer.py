"""
Admin e-mail on new orders. Best effort only: sent from a background
thread, failures are logged and dropped, nothing is retried.
"""

import logging
import smtplib
import threading
from email.message import EmailMessage

logger = logging.getLogger(__name__)

SMTP_TIMEOUT = 10


class Mailer:

    def __init__(self, settings):
        self.settings = settings

    @property
    def enabled(self):
        return bool(self.settings.smtp_host and self.settings.admin_email)

    def order_created(self, order):
        """fire and forget, returns the sending thread (or None when mail is off)"""
        if not self.enabled:
            return None
        thread = threading.Thread(
            target=self.send_order_email,
            args=(order,),
            name=f"mail-{order['id']}",
            daemon=True,
        )
        thread.start()
        return thread

    def build_message(self, order):
        msg = EmailMessage()
        msg['From'] = self.settings.mail_sender
        msg['To'] = self.settings.admin_email
        msg['Subject'] = f"New Order {order['id']}"
        msg.set_content(f"New order {order['id']} total: {order.get('total')}")
        return msg

    def send_order_email(self, order):
        s = self.settings
        try:
            msg = self.build_message(order)
            if s.smtp_secure:
                conn = smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, timeout=SMTP_TIMEOUT)
            else:
                conn = smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=SMTP_TIMEOUT)
            with conn:
                if not s.smtp_secure and s.smtp_user:
                    conn.starttls()
                if s.smtp_user:
                    conn.login(s.smtp_user, s.smtp_pass)
                conn.send_message(msg)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            logger.warning('mail failed for order %s: %s', order.get('id'), e)
            return False
        logger.info('order mail sent for %s', order.get('id'))
        return True
