"""Main FastAPI application"""
from fastapi import FastAPI
from waitlist.config import check_form_signing_secret, get_settings
from waitlist.middleware.cors import setup_cors
from waitlist.middleware.error_handler import setup_error_handlers
import logging

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

check_form_signing_secret(settings)

app = FastAPI(
    title="Waitlist API",
    description="Waitlist signup pipeline with Resend, reCAPTCHA and webhook proxies",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Setup CORS
setup_cors(app, settings)

# Error handling middleware and exception renderers
setup_error_handlers(app, debug=settings.debug)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "waitlist-backend",
        "resend": "configured" if settings.resend_api_key else "missing",
        "recaptcha": "configured" if settings.recaptcha_secret_key else "disabled",
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Waitlist Backend API",
        "version": "1.0.0",
        "docs": "/docs"
    }

# Import and include routers
from waitlist.routers import contacts, recaptcha, webhooks, forms

app.include_router(contacts.router, prefix="/api/resend-proxy", tags=["Registration Proxy"])
app.include_router(recaptcha.router, prefix="/api/recaptcha-proxy", tags=["CAPTCHA Proxy"])
app.include_router(webhooks.router, prefix="/api/webhook-proxy", tags=["Webhook Proxy"])
app.include_router(forms.router, prefix="/api/waitlist", tags=["Waitlist"])

logger.info(f"Waitlist API started ({settings.environment})")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
