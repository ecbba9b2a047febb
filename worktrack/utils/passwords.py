import hashlib
import hmac

def hash_password(password: str) -> str:
    """비밀번호를 SHA-256 해시 문자열로 변환합니다."""
    return hashlib.sha256(password.encode('utf-8')).hexdigest()

def verify_password(password: str, password_hash: str) -> bool:
    return hmac.compare_digest(hash_password(password), password_hash)
