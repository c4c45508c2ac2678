from storerating.core.security import create_access_token


PASSWORD = "Secret@123"


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
