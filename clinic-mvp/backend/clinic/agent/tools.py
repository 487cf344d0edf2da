"""
CRM agent 的 prompt 素材：system prompt、工具定义、预置 workflow。

工具定义只交给 LLM 看，模型返回的 tool call 原样报告给调用方，不在服务端执行。
"""

SYSTEM_PROMPT_TEMPLATE = """You are an AI assistant with access to the clinic's CRM through tools.

**Context:**
- Location ID: {location_id}
- Company ID: {company_id}
- Business: {clinic_name}
- Application: Clinic Patient Management Webapp

**Your Role:**
You help manage patient data, appointments, communications, and payments through the CRM.

**When Using Tools:**
1. Always include locationId: "{location_id}"
2. For patient operations, use contacts tools
3. For appointments, use calendars tools
4. For SMS/messaging, use conversations tools
5. For billing, use payments/invoices tools

**Response Format:**
- Be concise but informative
- Provide summaries after bulk operations
- Always confirm actions taken
- Report errors clearly

**Important:**
- This is a medical practice - be professional and HIPAA-aware
- Patient data is sensitive - handle with care
- Double-check before making bulk changes
- Always confirm destructive operations"""


CRM_TOOLS = [
    {
        'name': 'get_contacts',
        'description': 'Get contacts/patients from the CRM. Can filter and search.',
        'input_schema': {
            'type': 'object',
            'properties': {
                'locationId': {'type': 'string', 'description': 'Location ID (required)'},
                'limit': {'type': 'number', 'description': 'Max results (default: 20)'},
                'query': {'type': 'string', 'description': 'Search query'},
                'tags': {'type': 'array', 'items': {'type': 'string'}, 'description': 'Filter by tags'},
            },
            'required': ['locationId'],
        },
    },
    {
        'name': 'get_contact',
        'description': 'Get single contact by ID',
        'input_schema': {
            'type': 'object',
            'properties': {'contactId': {'type': 'string', 'description': 'Contact ID'}},
            'required': ['contactId'],
        },
    },
    {
        'name': 'create_contact',
        'description': 'Create a new contact/patient',
        'input_schema': {
            'type': 'object',
            'properties': {
                'locationId': {'type': 'string'},
                'firstName': {'type': 'string'},
                'lastName': {'type': 'string'},
                'email': {'type': 'string'},
                'phone': {'type': 'string'},
                'tags': {'type': 'array', 'items': {'type': 'string'}},
            },
            'required': ['locationId', 'firstName', 'lastName'],
        },
    },
    {
        'name': 'update_contact',
        'description': 'Update existing contact',
        'input_schema': {
            'type': 'object',
            'properties': {
                'contactId': {'type': 'string'},
                'locationId': {'type': 'string'},
                'updates': {'type': 'object', 'description': 'Fields to update'},
            },
            'required': ['contactId', 'locationId'],
        },
    },
    {
        'name': 'add_tags',
        'description': 'Add tags to a contact',
        'input_schema': {
            'type': 'object',
            'properties': {
                'contactId': {'type': 'string'},
                'tags': {'type': 'array', 'items': {'type': 'string'}},
            },
            'required': ['contactId', 'tags'],
        },
    },
    {
        'name': 'send_sms',
        'description': 'Send an SMS message to a contact',
        'input_schema': {
            'type': 'object',
            'properties': {
                'locationId': {'type': 'string'},
                'contactId': {'type': 'string'},
                'message': {'type': 'string'},
            },
            'required': ['locationId', 'contactId', 'message'],
        },
    },
    {
        'name': 'get_appointments',
        'description': 'Get calendar appointments',
        'input_schema': {
            'type': 'object',
            'properties': {
                'calendarId': {'type': 'string'},
                'startTime': {'type': 'string', 'description': 'ISO date string'},
                'endTime': {'type': 'string', 'description': 'ISO date string'},
            },
            'required': ['startTime', 'endTime'],
        },
    },
    {
        'name': 'get_invoices',
        'description': 'Get invoices and transactions',
        'input_schema': {
            'type': 'object',
            'properties': {
                'locationId': {'type': 'string'},
                'startDate': {'type': 'string'},
                'endDate': {'type': 'string'},
                'status': {'type': 'string', 'enum': ['paid', 'unpaid', 'partial', 'void']},
            },
            'required': ['locationId'],
        },
    },
]


# name → (description, schedule, prompt)
WORKFLOWS = {
    'send-appointment-reminders': (
        "Send SMS reminders for tomorrow's appointments",
        'Daily at 8 AM',
        """Find all appointments scheduled for tomorrow.
For each appointment:
1. Get the contact/patient details
2. Send an SMS reminder: "Hi [name]! Reminder: You have an appointment tomorrow at [time]. Reply CONFIRM to confirm."
3. Add a note to the appointment: "Reminder sent via AI agent"

Return a summary of how many reminders were sent.""",
    ),
    'follow-up-unpaid-invoices': (
        'Send payment reminders for overdue invoices (30+ days)',
        'Weekly on Monday',
        """Find all unpaid invoices where:
- Balance due is over $100
- Invoice is more than 30 days old

For each invoice:
1. Get the patient/contact details
2. Send SMS: "Hi [name]! This is a friendly reminder about your outstanding balance of $[amount]. You can pay securely here: [payment link]"
3. Tag the contact as "payment-followup-sent"

Return a summary of how many follow-ups were sent.""",
    ),
    'qualify-new-leads': (
        'Analyze and tag new leads as hot/warm/cold',
        'Daily at 9 AM',
        """Find all contacts created in the last 7 days with tag "new-lead".

For each contact:
1. Review their source, tags, and any custom fields
2. Check if they've responded to any outreach
3. Tag them as:
   - "hot-lead" if they've responded or have high-value indicators
   - "warm-lead" if they've shown interest but not responded
   - "cold-lead" if no engagement
4. For hot and warm leads, create an opportunity in the sales pipeline

Return a summary of how many leads were qualified in each category.""",
    ),
    'sync-all-patients': (
        'Bulk sync all unsynced patients to the CRM',
        'On demand',
        """Get all patients that don't have a CRM contact ID yet.
For each patient, create a contact in the CRM with their information.
Tag them as "patient".
Return a summary of how many patients were synced.""",
    ),
    'clean-duplicate-contacts': (
        'Find and report duplicate contacts',
        'Weekly on Sunday',
        """Search for duplicate contacts in the CRM based on email or phone number.
For each set of duplicates:
1. Identify which contact has the most complete information
2. List the duplicates found
3. Suggest which to keep and which to merge/delete

DO NOT delete anything automatically - just provide recommendations.""",
    ),
    'daily-engagement-report': (
        'Generate daily activity summary',
        'Daily at 5 PM',
        """Generate a daily engagement report:
1. How many new contacts were created today
2. How many SMS messages were sent/received
3. How many appointments were booked
4. How many invoices were created
5. Any contacts that need immediate attention (unpaid invoices, missed appointments, etc.)

Format as a concise summary report.""",
    ),
}
