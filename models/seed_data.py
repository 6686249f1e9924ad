"""Reference data seeded once into system_categories and question_templates.

Category names carry the markers (CRM, Inventory, Booking, Workflow,
Project) that the question generator maps to template category keys.
"""

from typing import Any, Dict, List


SYSTEM_CATEGORIES: List[Dict[str, Any]] = [
    {
        "name": "CRM (Customer Management)",
        "description": "Customer management, sales pipeline and contact history",
        "keywords": [
            "customer", "client", "crm", "sales", "lead", "contact",
            "deal", "pipeline", "顧客",
        ],
        "default_questions": [
            "How many customer records do you expect to manage?",
            "Which sales stages should the pipeline track?",
            "Do you need to import existing customer data?",
        ],
    },
    {
        "name": "Inventory Management",
        "description": "Inventory management, stock levels and warehouse operations",
        "keywords": [
            "inventory", "stock", "warehouse", "shipping", "receiving",
            "purchase order", "barcode", "sku", "在庫",
        ],
        "default_questions": [
            "How many SKUs will the system track?",
            "Do you operate more than one warehouse?",
            "Should stock levels trigger automatic reorders?",
        ],
    },
    {
        "name": "Booking System",
        "description": "Booking and reservation management for appointments and resources",
        "keywords": [
            "booking", "reservation", "appointment", "schedule", "calendar",
            "slot", "availability", "予約",
        ],
        "default_questions": [
            "What kind of resources or services are booked?",
            "Do customers book online by themselves?",
            "Are reminders or confirmations sent by email or SMS?",
        ],
    },
    {
        "name": "Workflow Automation",
        "description": "Workflow automation, approvals and business process routing",
        "keywords": [
            "workflow", "approval", "automation", "process", "routing",
            "form", "request", "ワークフロー",
        ],
        "default_questions": [
            "How many approval steps does a typical request go through?",
            "Should approvers be notified automatically?",
            "Do you need an audit trail of every decision?",
        ],
    },
    {
        "name": "Project Management",
        "description": "Project management, task tracking and team collaboration",
        "keywords": [
            "project", "task", "milestone", "gantt", "kanban", "team",
            "deadline", "プロジェクト",
        ],
        "default_questions": [
            "How many projects run at the same time?",
            "Do you need Gantt charts or Kanban boards?",
            "Should time spent on tasks be tracked?",
        ],
    },
]


QUESTION_TEMPLATES: List[Dict[str, Any]] = [
    # Asked for every category
    {
        "category": "common",
        "question": "How many people will use the system?",
        "description": "Tell us the expected number of users and concurrent users",
        "position": 10,
        "is_required": True,
    },
    {
        "category": "common",
        "question": "Should the system be usable from smartphones?",
        "description": "Mobile browsers, native apps or desktop only",
        "position": 20,
        "is_required": True,
    },
    {
        "category": "common",
        "question": "Does the system need to integrate with other services?",
        "description": "Accounting, email, e-commerce or other systems to connect",
        "position": 30,
        "is_required": False,
    },
    # CRM
    {
        "category": "crm",
        "question": "What customer information do you want to manage?",
        "description": "Contact details, purchase history, notes and so on",
        "position": 110,
        "is_required": True,
    },
    {
        "category": "crm",
        "question": "Do you need sales forecasting or reports?",
        "description": "Dashboards, forecast reports or exports",
        "position": 120,
        "is_required": False,
    },
    # Inventory
    {
        "category": "inventory",
        "question": "What kinds of products will you manage?",
        "description": "Product types, quantities and other details",
        "position": 110,
        "is_required": True,
    },
    {
        "category": "inventory",
        "question": "Will you use barcodes or other scanners for stock handling?",
        "description": "Input methods such as barcode readers",
        "position": 120,
        "is_required": True,
    },
    {
        "category": "inventory",
        "question": "How many administrators do you expect?",
        "description": "Number of users who manage stock at the same time",
        "position": 130,
        "is_required": True,
    },
    # Booking
    {
        "category": "booking",
        "question": "How far in advance can bookings be made?",
        "description": "Booking window and cancellation rules",
        "position": 110,
        "is_required": True,
    },
    {
        "category": "booking",
        "question": "Do bookings require online payment?",
        "description": "Prepayment, deposits or pay on arrival",
        "position": 120,
        "is_required": False,
    },
    # Workflow
    {
        "category": "workflow",
        "question": "Which business processes should be automated first?",
        "description": "Expense claims, purchase requests, leave requests and so on",
        "position": 110,
        "is_required": True,
    },
    {
        "category": "workflow",
        "question": "Do approval routes change depending on the amount or department?",
        "description": "Conditional routing rules",
        "position": 120,
        "is_required": False,
    },
    # Project
    {
        "category": "project",
        "question": "How do you track project progress today?",
        "description": "Spreadsheets, existing tools or meetings",
        "position": 110,
        "is_required": True,
    },
    {
        "category": "project",
        "question": "Do external partners need access to projects?",
        "description": "Guest accounts and permission levels",
        "position": 120,
        "is_required": False,
    },
]
