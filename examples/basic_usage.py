"""
Walk through a request: outgoing headers, response headers, then the body.

    FETCH_CURL_PRETTY_PRINT=1 python examples/basic_usage.py https://example.com
"""
import logging
import os
import sys

from fetch_curl import CurlRequest

logging.basicConfig(level=logging.DEBUG)

url = sys.argv[1] if len(sys.argv) > 1 else "https://example.com"
cookie_path = os.path.join(os.path.dirname(__file__), "cookie.txt")

request = (
    CurlRequest(url)
    .set_method("POST")
    .set_follow_location(True)
    .set_follow_location_max(5)
    .set_cookie_file(cookie_path)
    .set_cookie_jar(cookie_path)
)

print("request headers:")
print(request.get_request_headers(auto_close=False))

print("response headers:")
print(request.get_response_headers(auto_close=False))

# The header getters leave body suppression and header output switched on
content = request.set_return_body().set_return_response_header(False).execute()
if content is None:
    print(f"transfer failed: {request.last_error}")
else:
    print(f"body: {len(content)} chars")
