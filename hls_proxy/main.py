import logging

from fastapi import FastAPI, HTTPException

from hls_proxy.configs import settings
from hls_proxy.routes import proxy_router
from hls_proxy.schemas import GenerateUrlRequest, GenerateUrlResponse
from hls_proxy.utils.url_utils import encode_proxy_path, is_absolute_url

logging.basicConfig(level=settings.effective_log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
app = FastAPI()


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.post(
    "/generate_url",
    description="Generate the proxy URL for a destination URL",
    response_description="Returns the proxy URL",
    response_model=GenerateUrlResponse,
    tags=["url"],
)
async def generate_url(request: GenerateUrlRequest):
    """Generate the proxy URL that fetches and rewrites the destination URL."""
    if not is_absolute_url(request.destination_url):
        raise HTTPException(status_code=400, detail="destination_url must be an absolute http(s) URL")
    proxy_path = encode_proxy_path(request.destination_url, settings.proxy_path_prefix)
    if request.proxy_base_url:
        return GenerateUrlResponse(url=request.proxy_base_url.rstrip("/") + proxy_path)
    return GenerateUrlResponse(url=proxy_path)


app.include_router(proxy_router, prefix=settings.proxy_path_prefix.rstrip("/"), tags=["proxy"])


def run():
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8888, log_level="info")


if __name__ == "__main__":
    run()
