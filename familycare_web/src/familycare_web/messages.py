"""User-facing messages carried in redirect query strings."""

IDENTITY_NOT_CONFIGURED = "Supabase 환경변수가 설정되지 않았습니다. .env 파일을 확인해 주세요."
IDENTITY_REQUEST_FAILED = "Supabase 요청 중 오류가 발생했습니다."
IDENTITY_UNREACHABLE = "인증 서버에 연결하지 못했습니다. 잠시 후 다시 시도해 주세요."
SESSION_TOKENS_MISSING = "Supabase에서 세션 토큰을 받지 못했습니다."

LOGIN_REQUIRED = "로그인이 필요합니다."
CREDENTIALS_REQUIRED = "이메일과 비밀번호를 모두 입력해 주세요."
PASSWORD_TOO_SHORT = "비밀번호는 8자 이상으로 설정해 주세요."
SIGNUP_PENDING_CONFIRMATION = "가입 요청이 접수되었습니다. 이메일 인증 후 로그인해 주세요."
LOGGED_OUT = "로그아웃되었습니다."
GENERIC_FAILURE = "처리 중 오류가 발생했습니다. 잠시 후 다시 시도해 주세요."

UNSUPPORTED_PROVIDER = "지원하지 않는 소셜 로그인 공급자입니다."
OAUTH_TRANSACTION_EXPIRED = "소셜 로그인 세션 정보가 만료되었습니다. 다시 시도해 주세요."
OAUTH_UNKNOWN_PROVIDER = "소셜 로그인 공급자 정보가 올바르지 않습니다."
OAUTH_STATE_MISMATCH = "로그인 상태 검증에 실패했습니다. 다시 시도해 주세요."
OAUTH_EXCHANGE_FAILED = "소셜 로그인 처리 중 오류가 발생했습니다."
