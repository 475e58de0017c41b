from pydantic import AfterValidator, BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional, List, Dict, Any, Literal
from datetime import datetime, date

PaymentMethod = Literal["cash", "card", "transfer", "other"]
AppointmentStatus = Literal["confirmed", "pending", "cancelled"]
ClientStatus = Literal["active", "inactive"]
TransactionType = Literal["income", "expense"]
TransactionCategory = Literal[
    "service", "product", "rent", "utilities", "salary", "supplies", "marketing", "other"
]
AutomationType = Literal["message", "reminder", "promotion", "followup"]
AutomationTrigger = Literal[
    "after_appointment", "before_appointment", "no_show", "birthday", "inactivity", "low_stock"
]
TimeUnit = Literal["minutes", "hours", "days", "weeks", "months"]
ClosingStep = Literal["appointments", "additional", "automations"]


def _round_money(value: float) -> float:
    return round(value, 2)


# Valores monetários em euros, não negativos, com duas casas decimais
Money = Annotated[float, Field(ge=0), AfterValidator(_round_money)]


class CamelModel(BaseModel):
    """Banco em snake_case, JSON da API em camelCase"""

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


# Schemas de Cliente
class ClientBase(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    address: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    nif: Optional[str] = None
    notes: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, value):
        # Formulários enviam "" quando o campo fica vazio
        return value or None

class ClientCreate(ClientBase):
    pass

class ClientUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    address: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    nif: Optional[str] = None
    notes: Optional[str] = None
    avatar_url: Optional[str] = None
    status: Optional[ClientStatus] = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, value):
        return value or None

class ClientResponse(ClientBase):
    id: str
    initials: str
    status: ClientStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Schemas de Serviço (catálogo)
class ServiceBase(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    price: Money
    duration_minutes: int = Field(default=30, gt=0)


class ServiceCreate(ServiceBase):
    pass

class ServiceResponse(ServiceBase):
    id: str
    is_active: bool
    created_at: Optional[datetime] = None


# Schemas de Agendamento
class AppointmentBase(CamelModel):
    start: datetime
    end_time: datetime = Field(alias="end")
    client: str
    client_id: str
    client_initials: Optional[str] = None
    client_avatar: Optional[str] = None
    service: str
    service_id: Optional[str] = None
    service_duration: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None
    status: AppointmentStatus = "pending"

class AppointmentCreate(AppointmentBase):
    pass

class AppointmentUpdate(CamelModel):
    start: Optional[datetime] = None
    end_time: Optional[datetime] = Field(default=None, alias="end")
    client: Optional[str] = None
    client_id: Optional[str] = None
    client_initials: Optional[str] = None
    client_avatar: Optional[str] = None
    service: Optional[str] = None
    service_id: Optional[str] = None
    service_duration: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    color: Optional[str] = None

class AppointmentResponse(AppointmentBase):
    id: str
    title: str
    color: str


# Schemas de serviços prestados e comparecimento
class ClientServiceBase(CamelModel):
    service_name: str = Field(min_length=1)
    service_date: datetime
    price: Money
    attended: bool = True
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None


class ClientServiceCreate(ClientServiceBase):
    transaction_id: Optional[str] = None

class ClientServiceUpdate(CamelModel):
    service_name: Optional[str] = None
    service_date: Optional[datetime] = None
    price: Optional[Money] = None
    attended: Optional[bool] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None


class ClientServiceResponse(ClientServiceBase):
    id: str
    client_id: str
    transaction_id: Optional[str] = None
    created_at: Optional[datetime] = None

class ClientAttendanceCreate(CamelModel):
    appointment_id: str
    date: datetime
    attended: bool
    reason: Optional[str] = None

class ClientAttendanceUpdate(CamelModel):
    date: Optional[datetime] = None
    attended: Optional[bool] = None
    reason: Optional[str] = None

class ClientAttendanceResponse(ClientAttendanceCreate):
    id: str
    client_id: str
    created_at: Optional[datetime] = None


# Schemas Financeiros
class TransactionBase(CamelModel):
    type: TransactionType
    category: TransactionCategory
    amount: Money
    date: datetime
    description: str = Field(min_length=1)
    related_appointment_id: Optional[str] = None
    related_client_id: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class TransactionCreate(TransactionBase):
    id: Optional[str] = None

class TransactionUpdate(CamelModel):
    type: Optional[TransactionType] = None
    category: Optional[TransactionCategory] = None
    amount: Optional[Money] = None
    date: Optional[datetime] = None
    description: Optional[str] = Field(default=None, min_length=1)
    related_appointment_id: Optional[str] = None
    related_client_id: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class TransactionResponse(TransactionBase):
    id: str

class DailySummaryResponse(CamelModel):
    id: str
    date: date
    total_income: float
    total_expense: float
    net_balance: float
    transaction_count: int


# Schemas de Produto
class ProductBase(CamelModel):
    name: str = "Produto Sem Nome"
    description: Optional[str] = None
    price: Money = 0.0
    cost: Money = 0.0
    stock: int = 0
    min_stock: int = 5
    category: str = "outro"
    supplier: Optional[str] = None
    barcode: Optional[str] = None


class ProductCreate(ProductBase):
    pass

class ProductUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Money] = None
    cost: Optional[Money] = None
    stock: Optional[int] = None
    min_stock: Optional[int] = None
    category: Optional[str] = None
    supplier: Optional[str] = None
    barcode: Optional[str] = None


class ProductResponse(ProductBase):
    id: str
    sales: int
    updated_at: Optional[datetime] = None

class StockUpdate(CamelModel):
    # Campos opcionais: a ausência é respondida com 400, não 422
    id: Optional[str] = None
    quantity: Optional[int] = None


# Schemas de Automação
class AutomationBase(CamelModel):
    name: str = Field(min_length=1)
    type: AutomationType
    trigger: AutomationTrigger
    time_value: int = Field(default=0, ge=0)
    time_unit: TimeUnit = "days"
    active: bool = True
    message_template: Optional[str] = None

class AutomationCreate(AutomationBase):
    pass

class AutomationUpdate(CamelModel):
    name: Optional[str] = None
    type: Optional[AutomationType] = None
    trigger: Optional[AutomationTrigger] = None
    time_value: Optional[int] = Field(default=None, ge=0)
    time_unit: Optional[TimeUnit] = None
    active: Optional[bool] = None
    message_template: Optional[str] = None

class Automation(AutomationBase):
    id: int
    last_run: Optional[datetime] = None
    sent_count: int = 0

class SettingsSnapshot(CamelModel):
    version: int
    automations: List[Automation] = []
    automation_settings: Dict[str, Any] = {}
    business_info: Dict[str, Any] = {}
    working_hours: Dict[str, Any] = {}
    notifications: Dict[str, Any] = {}

class RelevantClient(CamelModel):
    client_id: str
    name: str
    phone: Optional[str] = None
    message: str
    link: Optional[str] = None

class SendAutomationRequest(CamelModel):
    client_ids: List[str]

class SendAutomationResponse(CamelModel):
    automation: Automation
    messages: List[RelevantClient]

class WhatsAppMessage(CamelModel):
    phone: str
    message: str


# Schemas do Fechamento de Caixa
class ClosingAppointment(CamelModel):
    id: str
    client_id: str
    client: str
    client_initials: Optional[str] = None
    service: str
    start: datetime
    end: datetime
    status: AppointmentStatus
    attended: Optional[bool] = None
    original_value: float
    current_value: float
    payment_method: PaymentMethod = "cash"

class ClosingAppointmentUpdate(CamelModel):
    attended: Optional[bool] = None
    current_value: Optional[Money] = None
    payment_method: Optional[PaymentMethod] = None


class AdditionalServiceCreate(CamelModel):
    client_id: str
    service_name: str
    value: Optional[Money] = None
    payment_method: PaymentMethod = "cash"


class AdditionalService(CamelModel):
    client_id: str
    service_name: str
    value: float
    payment_method: PaymentMethod = "cash"

class ClosingState(CamelModel):
    appointments: List[ClosingAppointment] = []
    additional_services: List[AdditionalService] = []

class ClosingResponse(ClosingState):
    id: str
    date: date
    step: ClosingStep
    applied_steps: List[str] = []
    can_proceed: bool
    completed_at: Optional[datetime] = None

class ClosingStats(CamelModel):
    total_clients: int
    total_services: int
    total_revenue: float
    pending_automations: int

class PendingAutomation(CamelModel):
    automation: Automation
    matched_clients: int

class ClosingAutomationsResponse(CamelModel):
    stats: ClosingStats
    automations: List[PendingAutomation]
