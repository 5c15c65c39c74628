"""
Erros de domínio do Help Buddy.

Todos são HTTPException, então o FastAPI já devolve {"detail": "..."} com o
status certo. As mensagens são o contrato textual que o cliente compara por
substring (ver helpbuddy/client/auth.py).
"""
from fastapi import HTTPException, status


class HelpBuddyError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, headers: dict | None = None):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)

    @property
    def message(self) -> str:
        return self.detail


class InvalidInputError(HelpBuddyError):
    status_code = status.HTTP_400_BAD_REQUEST


class SessionError(HelpBuddyError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Sessão inválida ou expirada"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(HelpBuddyError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(HelpBuddyError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(HelpBuddyError):
    status_code = status.HTTP_409_CONFLICT


# Mensagens compartilhadas entre a superfície RPC e a de tabelas
USER_NOT_FOUND = "Usuário não encontrado"
INVALID_CREDENTIALS = "Credenciais inválidas"
NO_PASSWORD_SET = "Usuário não possui senha definida"
USERNAME_TAKEN = "Nome de usuário já existe"
CONNECTION_CODE_UNAVAILABLE = "Não foi possível gerar um código de conexão, tente novamente"
USERNAME_REQUIRED = "Username é obrigatório"
PASSWORD_REQUIRED = "Senha é obrigatória"
INVALID_ROLE = "Papel inválido"
INVALID_CODE = "Código inválido: não foi possível encontrar um aluno com este código"
ALREADY_CONNECTED = "Já conectado: você já está conectado com este aluno"
ONLY_GUARDIANS_CONNECT = "Apenas pais e educadores podem se conectar a alunos"
ONLY_STUDENTS = "Apenas alunos podem realizar esta ação"
INVALID_MOOD = "Humor inválido"
ACTIVE_HELP_REQUEST_EXISTS = "Você já tem um pedido de ajuda ativo"
INVALID_HELP_REQUEST_ID = "ID de pedido de ajuda inválido"
HELP_REQUEST_NOT_FOUND = "Pedido de ajuda não encontrado ou já resolvido"
NOT_CONNECTED = "Você não está conectado com este aluno"
CONNECTION_NOT_FOUND = "Conexão não encontrada"
NOT_CONNECTION_PARTY = "Você não faz parte desta conexão"
ONLY_GUARDIANS_RESOLVE = "Apenas pais e educadores podem resolver pedidos de ajuda"
ONLY_GUARDIANS_DASHBOARD = "Apenas pais e educadores podem acessar este painel"
