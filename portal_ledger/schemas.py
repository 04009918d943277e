from pydantic import BaseModel, Field
from typing import Optional
from datetime import date
from decimal import Decimal


# ---------- Receitas ----------
class ImportOut(BaseModel):
    batchKey: str
    rowCount: int


class ReceitaUpdateIn(BaseModel):
    exercicio: int
    mes: int = Field(ge=1, le=12)
    data_lancamento: date
    categoria_economica: str = Field(min_length=1, max_length=255)
    origem: str = Field(min_length=1, max_length=255)
    especie: Optional[str] = Field(default=None, max_length=255)
    rubrica: Optional[str] = Field(default=None, max_length=255)
    alinea: Optional[str] = Field(default=None, max_length=255)
    fonte_recursos: str = Field(min_length=1, max_length=255)
    valor_previsto_inicial: Decimal = Decimal("0.00")
    valor_previsto_atualizado: Decimal = Decimal("0.00")
    valor_arrecadado: Decimal
    historico: Optional[str] = None


# ---------- Configuracao ----------
class ConfiguracaoIn(BaseModel):
    nome_entidade: str = Field(min_length=1, max_length=255)
    cnpj: Optional[str] = None
    cor_principal: Optional[str] = None
    endereco: Optional[str] = None
    telefone: Optional[str] = None
    email_entidade: Optional[str] = None
    site_oficial: Optional[str] = None
    politica_privacidade: Optional[str] = None
    termos_uso: Optional[str] = None


# ---------- FAQ ----------
class FaqIn(BaseModel):
    pergunta: str = Field(min_length=1, max_length=500)
    resposta: str = Field(min_length=1)
    ativo: Optional[bool] = None
    ordem: Optional[int] = None


# ---------- Usuarios ----------
class UsuarioCreateIn(BaseModel):
    nome: str = Field(min_length=1, max_length=150)
    email: str = Field(min_length=3, max_length=255)
    senha: str = Field(min_length=6)
    role: Optional[str] = None


class UsuarioUpdateIn(BaseModel):
    nome: str = Field(min_length=1, max_length=150)
    email: str = Field(min_length=3, max_length=255)
    role: str = Field(min_length=1, max_length=32)


class SenhaIn(BaseModel):
    senha: str = Field(min_length=6)
